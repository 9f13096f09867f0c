from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from resi_app.core.date_helper import to_naive_utc
from resi_app.models.enums import (
    AnnouncementPriority,
    AnnouncementStatus,
    AnnouncementType,
    CardType,
    ComplaintCategory,
    ComplaintStatus,
    Currency,
    EWalletProvider,
    Language,
    MaintenanceCategory,
    MaintenanceRecurrence,
    MaintenanceStatus,
    MaintenanceType,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Priority,
    PropertyAmenity,
    PropertyType,
    Recurrence,
    SubscriptionPlan,
    SubscriptionStatus,
    TargetAudience,
    Theme,
    UnitAmenity,
    UnitStatus,
    UnitType,
    UserRole,
)

UtcDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]

PHONE_PATTERN = r"^(\+62|62|0)8[1-9][0-9]{6,9}$"


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DateRangeRules(CamelModel):
    @field_validator("end_date", check_fields=False)
    @classmethod
    def end_after_start(cls, value, info: ValidationInfo):
        start = info.data.get("start_date")
        if value is not None and start is not None and value <= start:
            raise ValueError("Tanggal selesai harus setelah tanggal mulai")
        return value


class ScheduleRules(DateRangeRules):
    @field_validator("recurrence", check_fields=False)
    @classmethod
    def recurrence_matches_flag(cls, value, info: ValidationInfo):
        recurring = info.data.get("is_recurring")
        if recurring and value is None:
            raise ValueError("Pola pengulangan harus diisi untuk jadwal berulang")
        if not recurring and value is not None:
            raise ValueError("Pola pengulangan hanya boleh diisi untuk jadwal berulang")
        return value


# Summaries embedded in other resources


class TenantSummary(CamelModel):
    id: uuid.UUID
    name: str
    code: str


class PropertySummary(CamelModel):
    id: uuid.UUID
    name: str


class UnitSummary(CamelModel):
    id: uuid.UUID
    unit_number: str


class UserSummary(CamelModel):
    id: uuid.UUID
    name: Optional[str] = None
    email: str


# Auth


class RegisterInput(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: Optional[str] = Field(default=None, max_length=100)
    tenant_code: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class LoginInput(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class ForgotPasswordInput(CamelModel):
    email: EmailStr


class ResetPasswordInput(CamelModel):
    password: str = Field(..., min_length=6)


# Tenant


class SubscriptionIn(DateRangeRules):
    plan: SubscriptionPlan = SubscriptionPlan.BASIC
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    start_date: UtcDatetime
    end_date: UtcDatetime


class TenantContactIn(CamelModel):
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = None


class TenantCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    code: str = Field(..., min_length=2, max_length=20, pattern=r"^[A-Za-z0-9_-]+$")
    subscription: SubscriptionIn
    contact_info: TenantContactIn
    logo_caption: Optional[str] = None

    @field_validator("code")
    @classmethod
    def upper_code(cls, value: str) -> str:
        return value.upper()


class SubscriptionOut(CamelModel):
    plan: SubscriptionPlan
    status: SubscriptionStatus
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TenantContactOut(CamelModel):
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None


class TenantOut(CamelModel):
    id: uuid.UUID
    name: str
    code: str
    subscription: SubscriptionOut
    contact_info: TenantContactOut
    logo: Optional[dict] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# User


class UserCreate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.RESIDENT
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class NotificationPreferences(CamelModel):
    email: Optional[bool] = None
    push: Optional[bool] = None
    sms: Optional[bool] = None


class PreferencesUpdate(CamelModel):
    language: Optional[Language] = None
    notifications: Optional[NotificationPreferences] = None
    theme: Optional[Theme] = None


class PasswordResetRequest(CamelModel):
    email: EmailStr


class UserOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    name: Optional[str] = None
    email: str
    role: UserRole
    phone: Optional[str] = None
    avatar: Optional[dict] = None
    preferences: Optional[dict] = None
    is_verified: bool
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


# Property


class Coordinates(CamelModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class AddressIn(CamelModel):
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field(..., pattern=r"^\d{5}$")
    coordinates: Optional[Coordinates] = None


class PropertyContactIn(CamelModel):
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(default=None, max_length=255)


class PropertyCreate(CamelModel):
    name: str = Field(..., min_length=3, max_length=100)
    description: Optional[str] = None
    address: AddressIn
    total_units: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    property_type: PropertyType
    amenities: List[PropertyAmenity] = Field(default_factory=list)
    contact_info: Optional[PropertyContactIn] = None
    owner: Optional[uuid.UUID] = None


class AddressOut(CamelModel):
    street: str
    city: str
    state: str
    postal_code: str
    coordinates: Optional[Coordinates] = None


class PropertyContactOut(CamelModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class PropertyOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    name: str
    description: Optional[str] = None
    address: AddressOut
    total_units: int
    price: float
    property_type: PropertyType
    amenities: List[str] = Field(default_factory=list)
    images: List[dict] = Field(default_factory=list)
    contact_info: PropertyContactOut
    owner: Optional[UserSummary] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Unit


class UnitCreate(CamelModel):
    property: uuid.UUID
    unit_number: str = Field(..., min_length=1, max_length=20)
    floor: int
    type: UnitType
    size: float = Field(..., gt=0)
    price: float = Field(..., ge=0)
    status: UnitStatus = UnitStatus.AVAILABLE
    amenities: List[UnitAmenity] = Field(default_factory=list)
    current_tenant: Optional[uuid.UUID] = None


class UnitStatusUpdate(CamelModel):
    status: UnitStatus


class UnitOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    property: Optional[PropertySummary] = Field(
        default=None, validation_alias="property_ref"
    )
    unit_number: str
    floor: int
    type: UnitType
    size: float
    price: float
    status: UnitStatus
    amenities: List[str] = Field(default_factory=list)
    images: List[dict] = Field(default_factory=list)
    documents: List[dict] = Field(default_factory=list)
    current_tenant: Optional[UserSummary] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Announcement


class AnnouncementScheduleIn(ScheduleRules):
    start_date: Optional[UtcDatetime] = None
    end_date: Optional[UtcDatetime] = None
    is_recurring: bool = False
    recurrence: Optional[Recurrence] = Field(default=None, validate_default=True)


class AnnouncementCreate(CamelModel):
    property: uuid.UUID
    title: str = Field(..., min_length=3, max_length=100)
    content: str = Field(..., min_length=10)
    type: AnnouncementType = AnnouncementType.GENERAL
    priority: AnnouncementPriority = AnnouncementPriority.MEDIUM
    target_audience: TargetAudience = TargetAudience.ALL
    status: AnnouncementStatus = AnnouncementStatus.PUBLISHED
    schedule: AnnouncementScheduleIn = Field(default_factory=AnnouncementScheduleIn)


class AnnouncementScheduleOut(CamelModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    is_recurring: bool = False
    recurrence: Optional[Recurrence] = None


class AnnouncementViewOut(CamelModel):
    user: UserSummary
    viewed_at: datetime


class AnnouncementOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    property: Optional[PropertySummary] = Field(
        default=None, validation_alias="property_ref"
    )
    author: Optional[UserSummary] = None
    title: str
    content: str
    type: AnnouncementType
    priority: AnnouncementPriority
    target_audience: TargetAudience
    status: AnnouncementStatus
    schedule: AnnouncementScheduleOut
    attachments: List[dict] = Field(default_factory=list)
    views: List[AnnouncementViewOut] = Field(default_factory=list)
    view_count: int = 0
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Complaint


class ComplaintCreate(CamelModel):
    property: uuid.UUID
    unit: uuid.UUID
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10)
    category: ComplaintCategory
    priority: Priority = Priority.MEDIUM


class ComplaintStatusUpdate(CamelModel):
    status: ComplaintStatus
    notes: Optional[str] = None


class CommentCreate(CamelModel):
    content: str = Field(..., min_length=1)


class FeedbackCreate(CamelModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class CommentOut(CamelModel):
    id: uuid.UUID
    author: Optional[UserSummary] = None
    content: str
    attachments: List[dict] = Field(default_factory=list)
    created_at: datetime


class ResolutionOut(CamelModel):
    resolved_by: Optional[UserSummary] = None
    resolved_at: datetime
    notes: Optional[str] = None


class FeedbackOut(CamelModel):
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None


class ComplaintOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    property: Optional[PropertySummary] = Field(
        default=None, validation_alias="property_ref"
    )
    unit: Optional[UnitSummary] = None
    resident: Optional[UserSummary] = None
    title: str
    description: str
    category: ComplaintCategory
    priority: Priority
    status: ComplaintStatus
    attachments: List[dict] = Field(default_factory=list)
    comments: List[CommentOut] = Field(default_factory=list)
    resolution: Optional[ResolutionOut] = None
    feedback: Optional[FeedbackOut] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Payment


class PaymentDetailsIn(CamelModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    card_number: Optional[str] = None
    card_type: Optional[CardType] = None
    e_wallet_provider: Optional[EWalletProvider] = None
    e_wallet_number: Optional[str] = None


REQUIRED_PAYMENT_DETAILS = {
    PaymentMethod.BANK_TRANSFER: {
        "bank_name": "Nama bank harus diisi",
        "account_number": "Nomor rekening harus diisi",
        "account_name": "Nama pemilik rekening harus diisi",
    },
    PaymentMethod.CREDIT_CARD: {
        "card_number": "Nomor kartu harus diisi",
        "card_type": "Tipe kartu tidak valid",
    },
    PaymentMethod.E_WALLET: {
        "e_wallet_provider": "Provider e-wallet tidak valid",
        "e_wallet_number": "Nomor e-wallet harus diisi",
    },
}


class PaymentCreate(CamelModel):
    unit: uuid.UUID
    resident: uuid.UUID
    type: PaymentType
    amount: float = Field(..., ge=0)
    currency: Currency = Currency.IDR
    due_date: UtcDatetime
    status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod
    payment_details: PaymentDetailsIn = Field(
        default_factory=PaymentDetailsIn, validate_default=True
    )
    description: Optional[str] = None

    @field_validator("payment_details")
    @classmethod
    def require_method_details(cls, value: PaymentDetailsIn, info: ValidationInfo):
        required = REQUIRED_PAYMENT_DETAILS.get(info.data.get("payment_method"), {})
        for field_name, message in required.items():
            if not getattr(value, field_name):
                raise ValueError(f"{to_camel(field_name)}: {message}")
        return value


class PaymentStatusUpdate(CamelModel):
    status: PaymentStatus


class PaymentOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    unit: Optional[UnitSummary] = None
    resident: Optional[UserSummary] = None
    type: PaymentType
    amount: float
    currency: Currency
    due_date: datetime
    status: PaymentStatus
    payment_method: PaymentMethod
    payment_details: dict = Field(default_factory=dict)
    paid_at: Optional[datetime] = None
    description: Optional[str] = None
    attachments: List[dict] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime


# Maintenance


class MaintenanceScheduleIn(ScheduleRules):
    start_date: UtcDatetime
    end_date: UtcDatetime
    is_recurring: bool = False
    recurrence: Optional[MaintenanceRecurrence] = Field(
        default=None, validate_default=True
    )


class CostIn(CamelModel):
    estimated: Optional[float] = Field(default=None, ge=0)
    actual: Optional[float] = Field(default=None, ge=0)
    currency: Currency = Currency.IDR


class MaintenanceCreate(CamelModel):
    property: uuid.UUID
    unit: Optional[uuid.UUID] = None
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10)
    type: MaintenanceType
    priority: Priority = Priority.MEDIUM
    category: MaintenanceCategory
    status: MaintenanceStatus = MaintenanceStatus.SCHEDULED
    schedule: MaintenanceScheduleIn
    cost: CostIn = Field(default_factory=CostIn)
    assigned_to: Optional[uuid.UUID] = None
    notes: Optional[str] = None


class MaintenanceStatusUpdate(CamelModel):
    status: MaintenanceStatus
    notes: Optional[str] = None
    actual_cost: Optional[float] = Field(default=None, ge=0)


class MaintenanceScheduleOut(CamelModel):
    start_date: datetime
    end_date: datetime
    is_recurring: bool = False
    recurrence: Optional[MaintenanceRecurrence] = None


class CostOut(CamelModel):
    estimated: Optional[float] = None
    actual: Optional[float] = None
    currency: Currency


class MaintenanceOut(CamelModel):
    id: uuid.UUID
    tenant: Optional[TenantSummary] = None
    property: Optional[PropertySummary] = Field(
        default=None, validation_alias="property_ref"
    )
    unit: Optional[UnitSummary] = None
    title: str
    description: str
    type: MaintenanceType
    priority: Priority
    status: MaintenanceStatus
    category: MaintenanceCategory
    schedule: MaintenanceScheduleOut
    cost: CostOut
    assigned_to: Optional[UserSummary] = None
    completed_by: Optional[UserSummary] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    attachments: List[dict] = Field(default_factory=list)
    is_active: bool
    created_at: datetime
    updated_at: datetime
