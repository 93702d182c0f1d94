import re
import uuid
from datetime import datetime, timedelta
from typing import List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    EmailStr,
    Field,
    HttpUrl,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from estate_market.core.date_helper import as_utc, utcnow
from estate_market.models.enums import (
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

NEW_LISTING_WINDOW = timedelta(days=7)
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")


class CamelModel(BaseModel):
    model_config = {
        "from_attributes": True,
        "alias_generator": to_camel,
        "populate_by_name": True,
    }


def _as_datetime(value):
    # date-only strings ("2025-03-01") arrive from forms and query strings
    if isinstance(value, str) and len(value) == 10:
        return f"{value}T00:00:00+00:00"
    return value


def _validate_password(value: str) -> str:
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters")
    if not (
        re.search(r"[a-z]", value)
        and re.search(r"[A-Z]", value)
        and re.search(r"\d", value)
    ):
        raise ValueError(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter and one number"
        )
    return value


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value in (None, ""):
        return None
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number format")
    return value


# --- users & auth -----------------------------------------------------------


class RegisterSchema(CamelModel):
    name: str = Field(..., min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(..., max_length=100)
    role: UserRole = UserRole.TENANT
    phone: Optional[str] = None
    avatar: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        value = value.strip()
        if not re.match(r"^[a-zA-Z\s]+$", value):
            raise ValueError("Name can only contain letters and spaces")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_password(value)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value):
        return _validate_phone(value)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: UserRole) -> UserRole:
        if value not in (UserRole.TENANT, UserRole.LANDLORD):
            raise ValueError("Only tenant or landlord accounts can self-register")
        return value


class LoginSchema(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class RefreshTokenSchema(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordSchema(CamelModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class ResendVerificationSchema(ForgotPasswordSchema):
    pass


class ResetPasswordSchema(CamelModel):
    token: str = Field(..., min_length=1)
    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_password(value)


class ChangePasswordSchema(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _validate_password(value)


class VerifyEmailSchema(CamelModel):
    token: str = Field(..., min_length=1)


class ProfileUpdateSchema(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=50)
    phone: Optional[str] = None
    avatar: Optional[HttpUrl] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value):
        return _validate_phone(value)


class UserUpdateSchema(ProfileUpdateSchema):
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None


class UserBrief(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    avatar: Optional[str] = None
    phone: Optional[str] = None


class UserOut(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    is_email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AuthOut(CamelModel):
    user: UserOut
    access_token: str
    refresh_token: str
    expires_in: str


class TokenPairOut(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: str


# --- properties -------------------------------------------------------------


class PropertyCreateBase(CamelModel):
    title: str = Field(..., min_length=10, max_length=200)
    description: str = Field(..., min_length=50, max_length=5000)
    property_type: PropertyTypes
    address: str = Field(..., min_length=5, max_length=255)
    city: str = Field(..., min_length=2, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    country: str = Field("US", min_length=2, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    bedrooms: int = Field(0, ge=0, le=50)
    bathrooms: float = Field(0, ge=0, le=50)
    area_size: Optional[float] = Field(None, gt=0, le=1_000_000)
    area_unit: AreaUnit = AreaUnit.SQFT
    year_built: Optional[int] = Field(None, ge=1800)
    amenities: List[str] = Field(default_factory=list, max_length=50)
    images: List[HttpUrl] = Field(default_factory=list, max_length=30)
    tags: List[str] = Field(default_factory=list, max_length=20)
    currency: str = Field("USD", min_length=3, max_length=3)
    featured: bool = False
    agent_id: Optional[uuid.UUID] = None

    @field_validator("title", "description", "address", "city")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("year_built")
    @classmethod
    def validate_year_built(cls, value):
        if value is not None and value > utcnow().year + 1:
            raise ValueError("Year built cannot be in the future")
        return value

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.upper()


class RentPropertyCreate(PropertyCreateBase):
    listing_type: Literal["rent"]
    rent_price: float = Field(..., gt=0, le=1_000_000)
    security_deposit: Optional[float] = Field(None, ge=0, le=1_000_000)
    utility_deposit: Optional[float] = Field(None, ge=0, le=100_000)
    maintenance_fee: Optional[float] = Field(None, ge=0, le=100_000)
    minimum_stay: int = Field(1, ge=1, le=60)
    maximum_stay: Optional[int] = Field(None, ge=1, le=120)
    available_from: Optional[datetime] = None
    lease_duration: Optional[int] = Field(None, ge=1, le=120)
    is_furnished: bool = False
    pet_policy: HousePolicy = HousePolicy.NOT_ALLOWED
    smoking_policy: HousePolicy = HousePolicy.NOT_ALLOWED
    is_available: bool = True

    @field_validator("available_from", mode="before")
    @classmethod
    def parse_available_from(cls, value):
        return _as_datetime(value)

    @field_validator("available_from")
    @classmethod
    def available_from_utc(cls, value):
        return as_utc(value)

    @model_validator(mode="after")
    def validate_stay_bounds(self):
        if self.maximum_stay is not None and self.maximum_stay < self.minimum_stay:
            raise ValueError("Maximum stay cannot be shorter than minimum stay")
        return self


class SalePropertyCreate(PropertyCreateBase):
    listing_type: Literal["sale"]
    sale_price: float = Field(..., gt=0, le=100_000_000)
    original_price: Optional[float] = Field(None, gt=0, le=100_000_000)
    price_negotiable: bool = True
    mortgage_available: bool = False
    property_condition: PropertyCondition
    ownership_type: OwnershipType
    hoa_fee: Optional[float] = Field(None, ge=0, le=10_000)
    tax_amount: Optional[float] = Field(None, ge=0, le=100_000)
    time_on_market: Optional[int] = Field(None, ge=0)


PropertyCreate = Union[RentPropertyCreate, SalePropertyCreate]


class PropertyUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=10, max_length=200)
    description: Optional[str] = Field(None, min_length=50, max_length=5000)
    property_type: Optional[PropertyTypes] = None
    address: Optional[str] = Field(None, min_length=5, max_length=255)
    city: Optional[str] = Field(None, min_length=2, max_length=100)
    neighborhood: Optional[str] = Field(None, max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    zip_code: Optional[str] = Field(None, max_length=20)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    bedrooms: Optional[int] = Field(None, ge=0, le=50)
    bathrooms: Optional[float] = Field(None, ge=0, le=50)
    area_size: Optional[float] = Field(None, gt=0, le=1_000_000)
    status: Optional[PropertyStatus] = None
    images: Optional[List[HttpUrl]] = Field(None, max_length=30)
    amenities: Optional[List[str]] = Field(None, max_length=50)
    tags: Optional[List[str]] = Field(None, max_length=20)
    featured: Optional[bool] = None

    # rent
    rent_price: Optional[float] = Field(None, gt=0, le=1_000_000)
    security_deposit: Optional[float] = Field(None, ge=0, le=1_000_000)
    minimum_stay: Optional[int] = Field(None, ge=1, le=60)
    available_from: Optional[datetime] = None
    is_furnished: Optional[bool] = None
    pet_policy: Optional[HousePolicy] = None
    smoking_policy: Optional[HousePolicy] = None
    is_available: Optional[bool] = None

    # sale
    sale_price: Optional[float] = Field(None, gt=0, le=100_000_000)
    original_price: Optional[float] = Field(None, gt=0, le=100_000_000)
    price_negotiable: Optional[bool] = None
    property_condition: Optional[PropertyCondition] = None
    hoa_fee: Optional[float] = Field(None, ge=0, le=10_000)

    @field_validator(
        "title",
        "description",
        "property_type",
        "address",
        "city",
        "bedrooms",
        "bathrooms",
        "status",
        "tags",
        "featured",
        "rent_price",
        "minimum_stay",
        "sale_price",
        "property_condition",
    )
    @classmethod
    def reject_null(cls, value, info):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("title", "description", "address", "city")
    @classmethod
    def strip_text(cls, value: str) -> str:
        return value.strip() if value is not None else value

    @field_validator("available_from", mode="before")
    @classmethod
    def parse_available_from(cls, value):
        return _as_datetime(value)

    @field_validator("available_from")
    @classmethod
    def available_from_utc(cls, value):
        return as_utc(value)

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self


class PropertyOut(CamelModel):
    id: uuid.UUID
    listing_type: ListingType
    title: str
    description: str
    property_type: PropertyTypes
    address: str
    city: str
    neighborhood: Optional[str] = None
    state: Optional[str] = None
    country: str
    zip_code: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    bedrooms: int
    bathrooms: float
    area_size: Optional[float] = None
    area_unit: AreaUnit
    year_built: Optional[int] = None
    amenities: List[str] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    currency: str
    status: PropertyStatus
    featured: bool
    is_verified: bool
    views: int
    likes: List[uuid.UUID] = Field(default_factory=list)
    price: Optional[float] = None
    owner: Optional[UserBrief] = None
    agent: Optional[UserBrief] = None
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="likesCount")
    @property
    def likes_count(self) -> int:
        return len(self.likes)

    @computed_field(alias="isNew")
    @property
    def is_new(self) -> bool:
        return utcnow() - as_utc(self.created_at) <= NEW_LISTING_WINDOW


class RentPropertyOut(PropertyOut):
    rent_price: Optional[float] = None
    security_deposit: Optional[float] = None
    utility_deposit: Optional[float] = None
    maintenance_fee: Optional[float] = None
    minimum_stay: Optional[int] = None
    maximum_stay: Optional[int] = None
    available_from: Optional[datetime] = None
    lease_duration: Optional[int] = None
    is_furnished: Optional[bool] = None
    pet_policy: Optional[HousePolicy] = None
    smoking_policy: Optional[HousePolicy] = None
    is_available: Optional[bool] = None


class SalePropertyOut(PropertyOut):
    sale_price: Optional[float] = None
    original_price: Optional[float] = None
    price_negotiable: Optional[bool] = None
    mortgage_available: Optional[bool] = None
    property_condition: Optional[PropertyCondition] = None
    ownership_type: Optional[OwnershipType] = None
    hoa_fee: Optional[float] = None
    tax_amount: Optional[float] = None
    time_on_market: Optional[int] = None


PROPERTY_OUT_SCHEMAS = {
    ListingType.RENT: RentPropertyOut,
    ListingType.SALE: SalePropertyOut,
}


class PropertyBrief(CamelModel):
    id: uuid.UUID
    title: str
    listing_type: ListingType
    address: str
    city: str
    status: PropertyStatus
    images: List[str] = Field(default_factory=list)


class LikeToggleOut(CamelModel):
    liked: bool
    likes_count: int


class PropertyFiltersOut(CamelModel):
    cities: List[str]
    neighborhoods: List[str]
    property_types: List[str]
    listing_types: List[str]
    bedroom_options: List[int]
    amenities: List[str]


# --- bookings ---------------------------------------------------------------


class BookingCreate(CamelModel):
    property_id: uuid.UUID
    check_in: datetime
    check_out: datetime
    special_requests: Optional[str] = Field(None, max_length=1000)

    @field_validator("check_in", "check_out", mode="before")
    @classmethod
    def parse_dates(cls, value):
        return _as_datetime(value)

    @field_validator("check_in", "check_out")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        return as_utc(value)


class BookingPaymentCreate(CamelModel):
    booking_id: uuid.UUID
    return_url: HttpUrl


class BookingCancel(CamelModel):
    reason: str = Field(..., min_length=1, max_length=500)


class BookingOut(CamelModel):
    id: uuid.UUID
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    landlord_id: uuid.UUID
    property: Optional[PropertyBrief] = None
    tenant: Optional[UserBrief] = None
    check_in: datetime
    check_out: datetime
    total_days: int
    total_amount: float
    security_deposit: float
    special_requests: Optional[str] = None
    status: BookingStatus
    payment_status: PaymentStatus
    payment_intent_id: Optional[str] = None
    checkout_session_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CheckoutSessionOut(CamelModel):
    session_id: str
    url: str


# --- maintenance & activity -------------------------------------------------


class MaintenanceCreate(CamelModel):
    property_id: uuid.UUID
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=5000)
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    images: List[HttpUrl] = Field(default_factory=list, max_length=10)


class MaintenanceUpdate(CamelModel):
    status: Optional[MaintenanceStatus] = None
    priority: Optional[MaintenancePriority] = None

    @model_validator(mode="after")
    def require_one_field(self):
        if self.status is None and self.priority is None:
            raise ValueError("Provide a status or a priority to update")
        return self


class MaintenanceOut(CamelModel):
    id: uuid.UUID
    property_id: uuid.UUID
    tenant_id: uuid.UUID
    property: Optional[PropertyBrief] = None
    tenant: Optional[UserBrief] = None
    title: str
    description: str
    priority: MaintenancePriority
    status: MaintenanceStatus
    images: List[str] = Field(default_factory=list)
    reported_at: datetime
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class ActivityOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    action: ActivityAction
    message: str
    entity_id: Optional[uuid.UUID] = None
    entity_model: Optional[EntityModel] = None
    created_at: datetime


# --- uploads ----------------------------------------------------------------


class UploadImageResponse(CamelModel):
    url: str
    public_id: str
