import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from bcrypt import checkpw, gensalt, hashpw
from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from resi_app.core.date_helper import utcnow
from resi_app.core.get_db import Base

from .enums import (
    AnnouncementPriority,
    AnnouncementStatus,
    AnnouncementType,
    ComplaintCategory,
    ComplaintStatus,
    Currency,
    MaintenanceCategory,
    MaintenanceRecurrence,
    MaintenanceStatus,
    MaintenanceType,
    PaymentMethod,
    PaymentStatus,
    PaymentType,
    Priority,
    PropertyType,
    Recurrence,
    SubscriptionPlan,
    SubscriptionStatus,
    TargetAudience,
    UnitStatus,
    UnitType,
    UserRole,
)
from .utils import default_preferences, expiry_from_now, hash_token


def enum_column(enum_cls, **kwargs):
    return mapped_column(
        Enum(
            enum_cls,
            native_enum=False,
            length=32,
            values_callable=lambda members: [m.value for m in members],
        ),
        **kwargs,
    )


class TrackedMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class Tenant(TrackedMixin, Base):
    __tablename__ = "tenants"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    subscription_plan: Mapped[SubscriptionPlan] = enum_column(
        SubscriptionPlan, default=SubscriptionPlan.BASIC, nullable=False
    )
    subscription_status: Mapped[SubscriptionStatus] = enum_column(
        SubscriptionStatus, default=SubscriptionStatus.ACTIVE, nullable=False
    )
    subscription_start_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    subscription_end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20))
    contact_address: Mapped[Optional[str]] = mapped_column(Text)
    logo: Mapped[Optional[dict]] = mapped_column(JSON)

    @property
    def subscription(self) -> dict:
        return {
            "plan": self.subscription_plan,
            "status": self.subscription_status,
            "start_date": self.subscription_start_date,
            "end_date": self.subscription_end_date,
        }

    @property
    def contact_info(self) -> dict:
        return {
            "email": self.contact_email,
            "phone": self.contact_phone,
            "address": self.contact_address,
        }


class User(TrackedMixin, Base):
    __tablename__ = "users"

    tenant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("tenants.id"), index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = enum_column(
        UserRole, default=UserRole.RESIDENT, nullable=False
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20))
    avatar: Mapped[Optional[dict]] = mapped_column(JSON)
    preferences: Mapped[dict] = mapped_column(JSON, default=default_preferences)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    verification_token_hash: Mapped[Optional[str]] = mapped_column(String(64))
    verification_expires: Mapped[Optional[datetime]] = mapped_column(DateTime)
    reset_token_hash: Mapped[Optional[str]] = mapped_column(String(64))
    reset_expires: Mapped[Optional[datetime]] = mapped_column(DateTime)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime)

    tenant: Mapped[Optional["Tenant"]] = relationship("Tenant")

    def set_password(self, raw_password: str):
        salt = gensalt()
        self.hashed_password = hashpw(raw_password.encode("utf-8"), salt).decode(
            "utf-8"
        )

    def check_password(self, raw_password: str) -> bool:
        return checkpw(
            raw_password.encode("utf-8"), self.hashed_password.encode("utf-8")
        )

    def set_verification_token(self, token: str, ttl: timedelta):
        self.verification_token_hash = hash_token(token)
        self.verification_expires = expiry_from_now(ttl)

    def set_reset_token(self, token: str, ttl: timedelta):
        self.reset_token_hash = hash_token(token)
        self.reset_expires = expiry_from_now(ttl)

    def clear_reset_token(self):
        self.reset_token_hash = None
        self.reset_expires = None

    def mark_verified(self):
        self.is_verified = True
        self.verification_token_hash = None
        self.verification_expires = None


class Property(TrackedMixin, Base):
    __tablename__ = "properties"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    street: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str] = mapped_column(String(5), nullable=False)
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    total_units: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    property_type: Mapped[PropertyType] = enum_column(PropertyType, nullable=False)
    amenities: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    contact_phone: Mapped[Optional[str]] = mapped_column(String(20))
    contact_email: Mapped[Optional[str]] = mapped_column(String(255))
    contact_website: Mapped[Optional[str]] = mapped_column(String(255))
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"))

    tenant: Mapped["Tenant"] = relationship("Tenant")
    owner: Mapped[Optional["User"]] = relationship("User", foreign_keys=[owner_id])

    @property
    def address(self) -> dict:
        coordinates = None
        if self.latitude is not None and self.longitude is not None:
            coordinates = {"lat": self.latitude, "lng": self.longitude}
        return {
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "postal_code": self.postal_code,
            "coordinates": coordinates,
        }

    @property
    def contact_info(self) -> dict:
        return {
            "phone": self.contact_phone,
            "email": self.contact_email,
            "website": self.contact_website,
        }


class Unit(TrackedMixin, Base):
    __tablename__ = "units"
    __table_args__ = (
        UniqueConstraint("property_id", "unit_number", name="uq_unit_property_number"),
    )

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    unit_number: Mapped[str] = mapped_column(String(20), nullable=False)
    floor: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[UnitType] = enum_column(UnitType, nullable=False)
    size: Mapped[float] = mapped_column(Float, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[UnitStatus] = enum_column(
        UnitStatus, default=UnitStatus.AVAILABLE, nullable=False
    )
    amenities: Mapped[list] = mapped_column(JSON, default=list)
    images: Mapped[list] = mapped_column(JSON, default=list)
    documents: Mapped[list] = mapped_column(JSON, default=list)
    current_tenant_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("users.id")
    )

    tenant: Mapped["Tenant"] = relationship("Tenant")
    property_ref: Mapped["Property"] = relationship("Property")
    current_tenant: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[current_tenant_id]
    )


class Announcement(TrackedMixin, Base):
    __tablename__ = "announcements"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[AnnouncementType] = enum_column(
        AnnouncementType, default=AnnouncementType.GENERAL, nullable=False
    )
    priority: Mapped[AnnouncementPriority] = enum_column(
        AnnouncementPriority, default=AnnouncementPriority.MEDIUM, nullable=False
    )
    target_audience: Mapped[TargetAudience] = enum_column(
        TargetAudience, default=TargetAudience.ALL, nullable=False
    )
    status: Mapped[AnnouncementStatus] = enum_column(
        AnnouncementStatus, default=AnnouncementStatus.PUBLISHED, nullable=False
    )
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence: Mapped[Optional[Recurrence]] = enum_column(Recurrence, nullable=True)
    attachments: Mapped[list] = mapped_column(JSON, default=list)

    tenant: Mapped["Tenant"] = relationship("Tenant")
    property_ref: Mapped["Property"] = relationship("Property")
    author: Mapped["User"] = relationship("User", foreign_keys=[author_id])
    views: Mapped[List["AnnouncementView"]] = relationship(
        "AnnouncementView",
        back_populates="announcement",
        order_by="AnnouncementView.viewed_at",
        cascade="all, delete-orphan",
    )

    @property
    def schedule(self) -> dict:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "is_recurring": self.is_recurring,
            "recurrence": self.recurrence,
        }

    @property
    def view_count(self) -> int:
        return len(self.views)


class AnnouncementView(Base):
    __tablename__ = "announcement_views"
    __table_args__ = (
        UniqueConstraint("announcement_id", "user_id", name="uq_announcement_view_user"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    announcement_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("announcements.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    announcement: Mapped["Announcement"] = relationship(
        "Announcement", back_populates="views"
    )
    user: Mapped["User"] = relationship("User")


class Complaint(TrackedMixin, Base):
    __tablename__ = "complaints"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("units.id"), nullable=False)
    resident_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[ComplaintCategory] = enum_column(ComplaintCategory, nullable=False)
    priority: Mapped[Priority] = enum_column(
        Priority, default=Priority.MEDIUM, nullable=False
    )
    status: Mapped[ComplaintStatus] = enum_column(
        ComplaintStatus, default=ComplaintStatus.PENDING, nullable=False
    )
    attachments: Mapped[list] = mapped_column(JSON, default=list)
    resolved_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"))
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    resolution_notes: Mapped[Optional[str]] = mapped_column(Text)
    feedback_rating: Mapped[Optional[int]] = mapped_column(Integer)
    feedback_comment: Mapped[Optional[str]] = mapped_column(Text)
    feedback_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    tenant: Mapped["Tenant"] = relationship("Tenant")
    property_ref: Mapped["Property"] = relationship("Property")
    unit: Mapped["Unit"] = relationship("Unit")
    resident: Mapped["User"] = relationship("User", foreign_keys=[resident_id])
    resolved_by: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[resolved_by_id]
    )
    comments: Mapped[List["ComplaintComment"]] = relationship(
        "ComplaintComment",
        back_populates="complaint",
        order_by="ComplaintComment.created_at",
        cascade="all, delete-orphan",
    )

    @property
    def has_feedback(self) -> bool:
        return self.feedback_rating is not None

    @property
    def resolution(self) -> Optional[dict]:
        if self.resolved_at is None:
            return None
        return {
            "resolved_by": self.resolved_by,
            "resolved_at": self.resolved_at,
            "notes": self.resolution_notes,
        }

    @property
    def feedback(self) -> Optional[dict]:
        if not self.has_feedback:
            return None
        return {
            "rating": self.feedback_rating,
            "comment": self.feedback_comment,
            "created_at": self.feedback_at,
        }


class ComplaintComment(Base):
    __tablename__ = "complaint_comments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    complaint_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("complaints.id"), nullable=False, index=True
    )
    author_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    attachments: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    complaint: Mapped["Complaint"] = relationship("Complaint", back_populates="comments")
    author: Mapped["User"] = relationship("User")


class Payment(TrackedMixin, Base):
    __tablename__ = "payments"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    unit_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("units.id"), nullable=False)
    resident_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    type: Mapped[PaymentType] = enum_column(PaymentType, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[Currency] = enum_column(
        Currency, default=Currency.IDR, nullable=False
    )
    due_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    status: Mapped[PaymentStatus] = enum_column(
        PaymentStatus, default=PaymentStatus.PENDING, nullable=False
    )
    payment_method: Mapped[PaymentMethod] = enum_column(PaymentMethod, nullable=False)
    payment_details: Mapped[dict] = mapped_column(JSON, default=dict)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    description: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[list] = mapped_column(JSON, default=list)

    tenant: Mapped["Tenant"] = relationship("Tenant")
    unit: Mapped["Unit"] = relationship("Unit")
    resident: Mapped["User"] = relationship("User", foreign_keys=[resident_id])


class Maintenance(TrackedMixin, Base):
    __tablename__ = "maintenance_tasks"

    tenant_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("tenants.id"), nullable=False, index=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id"), nullable=False, index=True
    )
    unit_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("units.id"))
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[MaintenanceType] = enum_column(MaintenanceType, nullable=False)
    priority: Mapped[Priority] = enum_column(
        Priority, default=Priority.MEDIUM, nullable=False
    )
    status: Mapped[MaintenanceStatus] = enum_column(
        MaintenanceStatus, default=MaintenanceStatus.SCHEDULED, nullable=False
    )
    category: Mapped[MaintenanceCategory] = enum_column(
        MaintenanceCategory, nullable=False
    )
    start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurrence: Mapped[Optional[MaintenanceRecurrence]] = enum_column(
        MaintenanceRecurrence, nullable=True
    )
    estimated_cost: Mapped[Optional[float]] = mapped_column(Float)
    actual_cost: Mapped[Optional[float]] = mapped_column(Float)
    cost_currency: Mapped[Currency] = enum_column(
        Currency, default=Currency.IDR, nullable=False
    )
    assigned_to_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"))
    completed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey("users.id"))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    attachments: Mapped[list] = mapped_column(JSON, default=list)

    tenant: Mapped["Tenant"] = relationship("Tenant")
    property_ref: Mapped["Property"] = relationship("Property")
    unit: Mapped[Optional["Unit"]] = relationship("Unit")
    assigned_to: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[assigned_to_id]
    )
    completed_by: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[completed_by_id]
    )

    @property
    def schedule(self) -> dict:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "is_recurring": self.is_recurring,
            "recurrence": self.recurrence,
        }

    @property
    def cost(self) -> dict:
        return {
            "estimated": self.estimated_cost,
            "actual": self.actual_cost,
            "currency": self.cost_currency,
        }
