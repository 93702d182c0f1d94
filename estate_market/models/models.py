import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from bcrypt import checkpw, gensalt, hashpw
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from estate_market.core.database import Base
from estate_market.core.date_helper import utcnow

from .enums import (
    ActivityAction,
    AreaUnit,
    BookingStatus,
    EntityModel,
    HousePolicy,
    ListingType,
    MaintenancePriority,
    MaintenanceStatus,
    OwnershipType,
    PaymentStatus,
    PropertyCondition,
    PropertyStatus,
    PropertyTypes,
    UserRole,
)


def enum_column(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


property_likes = Table(
    "property_likes",
    Base.metadata,
    Column(
        "property_id",
        Uuid,
        ForeignKey("properties.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "user_id",
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(
        enum_column(UserRole), nullable=False, default=UserRole.TENANT
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False)

    email_verification_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    email_verification_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(64), nullable=True, index=True
    )
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    refresh_token: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def set_password(self, raw_password: str):
        salt = gensalt()
        self.hashed_password = hashpw(raw_password.encode("utf-8"), salt).decode(
            "utf-8"
        )

    def check_password(self, raw_password: str) -> bool:
        if not self.hashed_password:
            return False
        return checkpw(
            raw_password.encode("utf-8"), self.hashed_password.encode("utf-8")
        )

    def normalize(self) -> None:
        self.email = self.email.strip().lower()
        self.name = self.name.strip()

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"


class PropertyAmenity(Base):
    __tablename__ = "property_amenities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("property_id", "name", name="uq_property_amenity"),
    )


class Property(Base):
    """A listing; ``listing_type`` selects the rent or sale variant.

    Variant columns live on the one ``properties`` table and stay NULL for
    the other variant.
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    listing_type: Mapped[ListingType] = mapped_column(
        enum_column(ListingType), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    property_type: Mapped[PropertyTypes] = mapped_column(
        enum_column(PropertyTypes), nullable=False, index=True
    )

    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    neighborhood: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), default="US")
    zip_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    bedrooms: Mapped[int] = mapped_column(Integer, default=0)
    bathrooms: Mapped[float] = mapped_column(Float, default=0)
    area_size: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    area_unit: Mapped[AreaUnit] = mapped_column(
        enum_column(AreaUnit), default=AreaUnit.SQFT
    )
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    images: Mapped[List[str]] = mapped_column(JSON, default=list)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    currency: Mapped[str] = mapped_column(String(10), default="USD")

    status: Mapped[PropertyStatus] = mapped_column(
        enum_column(PropertyStatus),
        default=PropertyStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    featured: Mapped[bool] = mapped_column(Boolean, default=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    agent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # rent
    rent_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    security_deposit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    utility_deposit: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    maintenance_fee: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    minimum_stay: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    maximum_stay: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    available_from: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    lease_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_furnished: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    pet_policy: Mapped[Optional[HousePolicy]] = mapped_column(
        enum_column(HousePolicy), nullable=True
    )
    smoking_policy: Mapped[Optional[HousePolicy]] = mapped_column(
        enum_column(HousePolicy), nullable=True
    )
    is_available: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # sale
    sale_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2), nullable=True
    )
    original_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2), nullable=True
    )
    price_negotiable: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    mortgage_available: Mapped[Optional[bool]] = mapped_column(
        Boolean, nullable=True
    )
    property_condition: Mapped[Optional[PropertyCondition]] = mapped_column(
        enum_column(PropertyCondition), nullable=True
    )
    ownership_type: Mapped[Optional[OwnershipType]] = mapped_column(
        enum_column(OwnershipType), nullable=True
    )
    hoa_fee: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    tax_amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    time_on_market: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    owner: Mapped["User"] = relationship(
        "User", foreign_keys=[owner_id], lazy="selectin"
    )
    agent: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[agent_id], lazy="selectin"
    )
    amenity_rows: Mapped[List["PropertyAmenity"]] = relationship(
        "PropertyAmenity",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PropertyAmenity.name",
    )
    liked_by: Mapped[List["User"]] = relationship(
        "User", secondary=property_likes, lazy="selectin"
    )

    __mapper_args__ = {"polymorphic_on": listing_type}

    __table_args__ = (Index("ix_properties_status_created", "status", "created_at"),)

    VARIANT_FIELDS: tuple = ()

    @validates("latitude")
    def validate_latitude(self, key, value):
        if value is not None and not -90 <= value <= 90:
            raise ValueError("Latitude must be between -90 and 90.")
        return value

    @validates("longitude")
    def validate_longitude(self, key, value):
        if value is not None and not -180 <= value <= 180:
            raise ValueError("Longitude must be between -180 and 180.")
        return value

    @property
    def amenities(self) -> List[str]:
        return [row.name for row in self.amenity_rows]

    def set_amenities(self, names) -> None:
        wanted = []
        for name in names or []:
            clean = name.strip()
            if clean and clean not in wanted:
                wanted.append(clean)
        keep = [row for row in self.amenity_rows if row.name in wanted]
        present = {row.name for row in keep}
        keep.extend(PropertyAmenity(name=n) for n in wanted if n not in present)
        self.amenity_rows = keep

    @property
    def likes(self) -> List[uuid.UUID]:
        return [user.id for user in self.liked_by]

    @property
    def price(self) -> Optional[Decimal]:
        return None

    def is_liked_by(self, user_id: uuid.UUID) -> bool:
        return any(user.id == user_id for user in self.liked_by)


class RentProperty(Property):
    __mapper_args__ = {"polymorphic_identity": ListingType.RENT}

    VARIANT_FIELDS = (
        "rent_price",
        "security_deposit",
        "utility_deposit",
        "maintenance_fee",
        "minimum_stay",
        "maximum_stay",
        "available_from",
        "lease_duration",
        "is_furnished",
        "pet_policy",
        "smoking_policy",
        "is_available",
    )

    @property
    def price(self) -> Optional[Decimal]:
        return self.rent_price


class SaleProperty(Property):
    __mapper_args__ = {"polymorphic_identity": ListingType.SALE}

    VARIANT_FIELDS = (
        "sale_price",
        "original_price",
        "price_negotiable",
        "mortgage_available",
        "property_condition",
        "ownership_type",
        "hoa_fee",
        "tax_amount",
        "time_on_market",
    )

    @property
    def price(self) -> Optional[Decimal]:
        return self.sale_price


LISTING_CLASSES = {
    ListingType.RENT: RentProperty,
    ListingType.SALE: SaleProperty,
}


class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    landlord_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    check_out: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    total_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    security_deposit: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    special_requests: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[BookingStatus] = mapped_column(
        enum_column(BookingStatus),
        default=BookingStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        enum_column(PaymentStatus),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_intent_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    checkout_session_id: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    property: Mapped["Property"] = relationship("Property", lazy="selectin")
    tenant: Mapped["User"] = relationship(
        "User", foreign_keys=[tenant_id], lazy="selectin"
    )
    landlord: Mapped["User"] = relationship(
        "User", foreign_keys=[landlord_id], lazy="selectin"
    )

    def involves(self, user_id: uuid.UUID) -> bool:
        return user_id in (self.tenant_id, self.landlord_id)

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} {self.status.value}/{self.payment_status.value}>"
        )


class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[MaintenancePriority] = mapped_column(
        enum_column(MaintenancePriority), default=MaintenancePriority.MEDIUM
    )
    status: Mapped[MaintenanceStatus] = mapped_column(
        enum_column(MaintenanceStatus),
        default=MaintenanceStatus.PENDING,
        nullable=False,
        index=True,
    )
    images: Mapped[List[str]] = mapped_column(JSON, default=list)
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    property: Mapped["Property"] = relationship("Property", lazy="selectin")
    tenant: Mapped["User"] = relationship("User", lazy="selectin")

    def change_status(self, status: MaintenanceStatus) -> None:
        self.status = status
        if status == MaintenanceStatus.COMPLETED:
            self.completed_at = utcnow()
        else:
            self.completed_at = None


class Activity(Base):
    __tablename__ = "activities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    action: Mapped[ActivityAction] = mapped_column(
        enum_column(ActivityAction), nullable=False, index=True
    )
    message: Mapped[str] = mapped_column(String(500), nullable=False)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True, index=True
    )
    entity_model: Mapped[Optional[EntityModel]] = mapped_column(
        enum_column(EntityModel), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
