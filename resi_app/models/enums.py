from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    RESIDENT = "resident"


class Language(str, Enum):
    ID = "id"
    EN = "en"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class SubscriptionPlan(str, Enum):
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    CONDO = "condo"
    HOUSE = "house"
    LAND = "land"


class PropertyAmenity(str, Enum):
    PARKING = "parking"
    SECURITY = "security"
    ELEVATOR = "elevator"
    GYM = "gym"
    POOL = "pool"
    PLAYGROUND = "playground"
    GARDEN = "garden"


class UnitType(str, Enum):
    STUDIO = "studio"
    ONE_BR = "1BR"
    TWO_BR = "2BR"
    THREE_BR = "3BR"
    PENTHOUSE = "penthouse"


class UnitStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"


class UnitAmenity(str, Enum):
    PARKING = "parking"
    BALCONY = "balcony"
    GARDEN = "garden"
    POOL = "pool"
    GYM = "gym"


class AnnouncementType(str, Enum):
    GENERAL = "general"
    MAINTENANCE = "maintenance"
    EVENT = "event"
    EMERGENCY = "emergency"
    OTHER = "other"


class AnnouncementPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TargetAudience(str, Enum):
    ALL = "all"
    RESIDENTS = "residents"
    STAFF = "staff"
    MANAGEMENT = "management"


class AnnouncementStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Recurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class MaintenanceRecurrence(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ComplaintCategory(str, Enum):
    MAINTENANCE = "maintenance"
    SECURITY = "security"
    NOISE = "noise"
    CLEANLINESS = "cleanliness"
    OTHER = "other"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ComplaintStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class PaymentType(str, Enum):
    RENT = "rent"
    DEPOSIT = "deposit"
    MAINTENANCE = "maintenance"
    UTILITY = "utility"
    OTHER = "other"


class Currency(str, Enum):
    IDR = "IDR"
    USD = "USD"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    CREDIT_CARD = "credit_card"
    E_WALLET = "e_wallet"
    CASH = "cash"


class CardType(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    AMEX = "amex"


class EWalletProvider(str, Enum):
    GOPAY = "gopay"
    OVO = "ovo"
    DANA = "dana"
    LINKAJA = "linkaja"


class MaintenanceType(str, Enum):
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    EMERGENCY = "emergency"
    INSPECTION = "inspection"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class MaintenanceCategory(str, Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    STRUCTURAL = "structural"
    APPLIANCE = "appliance"
    PEST_CONTROL = "pest_control"
    CLEANING = "cleaning"
    OTHER = "other"
