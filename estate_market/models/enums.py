from enum import Enum


class UserRole(str, Enum):
    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"
    SUPPORT = "support"


class ListingType(str, Enum):
    RENT = "rent"
    SALE = "sale"


class PropertyTypes(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    CONDO = "condo"
    VILLA = "villa"
    TOWNHOUSE = "townhouse"
    STUDIO = "studio"
    LAND = "land"
    COMMERCIAL = "commercial"


class PropertyStatus(str, Enum):
    AVAILABLE = "available"
    PENDING = "pending"
    SOLD = "sold"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    UNAVAILABLE = "unavailable"


class AreaUnit(str, Enum):
    SQFT = "sqft"
    SQM = "sqm"
    ACRES = "acres"
    HECTARES = "hectares"


class HousePolicy(str, Enum):
    ALLOWED = "allowed"
    NOT_ALLOWED = "not-allowed"
    CASE_BY_CASE = "case-by-case"


class PropertyCondition(str, Enum):
    NEW = "new"
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_RENOVATION = "needs-renovation"


class OwnershipType(str, Enum):
    FREEHOLD = "freehold"
    LEASEHOLD = "leasehold"
    CONDOMINIUM = "condominium"
    COOPERATIVE = "cooperative"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class MaintenancePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MaintenanceStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ActivityAction(str, Enum):
    USER_REGISTERED = "user_registered"
    USER_LOGIN = "user_login"
    PROPERTY_CREATED = "property_created"
    PROPERTY_UPDATED = "property_updated"
    PROPERTY_DELETED = "property_deleted"
    PROPERTY_LIKED = "property_liked"
    PROPERTY_VIEWED = "property_viewed"
    MAINTENANCE_REQUESTED = "maintenance_requested"
    MAINTENANCE_STATUS_CHANGED = "maintenance_status_changed"
    BOOKING_CREATED = "booking_created"
    BOOKING_CANCELLED = "booking_cancelled"
    RENT_PAYMENT_RECEIVED = "rent_payment_received"


class EntityModel(str, Enum):
    PROPERTY = "Property"
    USER = "User"
    MAINTENANCE_REQUEST = "MaintenanceRequest"
    BOOKING = "Booking"
    PAYMENT = "Payment"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


PROPERTY_SORT_FIELDS = {
    "price",
    "createdAt",
    "updatedAt",
    "areaSize",
    "bedrooms",
    "views",
}

ALLOWED_IMAGE_FORMATS = {"jpg", "jpeg", "png", "webp"}
