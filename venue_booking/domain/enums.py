import enum


class UserRole(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


class EventCategory(str, enum.Enum):
    CONCERT = "concert"
    RECITAL = "recital"
    WORKSHOP = "workshop"
    MASTERCLASS = "masterclass"
    EXHIBITION = "exhibition"
    PERFORMANCE = "performance"
    OTHER = "other"


class EventStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    REJECTED = "rejected"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class RefundStatus(str, enum.Enum):
    NONE = "none"
    PARTIAL = "partial"
    FULL = "full"
    PENDING = "pending"


class BookingSource(str, enum.Enum):
    WEBSITE = "website"
    PHONE = "phone"
    EMAIL = "email"
    WALK_IN = "walk_in"
    ADMIN = "admin"


class DiscountType(str, enum.Enum):
    EARLY_BIRD = "early_bird"
    STUDENT = "student"
    SENIOR = "senior"
    GROUP = "group"


class ReportPeriod(str, enum.Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"
