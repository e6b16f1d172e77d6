# leadvault_backend/models.py
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
import uuid

from sqlalchemy import Column, Index, JSON
from sqlmodel import SQLModel, Field

from core.timeutils import utcnow


def new_id() -> str:
    return uuid.uuid4().hex


# ============================================================
# ENUMS
# ============================================================
class ContactType(str, Enum):
    B2B = "B2B"
    B2C = "B2C"


class ContactPhase(str, Enum):
    RAW = "RAW"
    CLEANED = "CLEANED"
    DELIVERING = "DELIVERING"
    DELIVERED = "DELIVERED"


class ValidationType(str, Enum):
    SINGLE = "single"
    BULK = "bulk"
    CSV = "csv"


class SubscriptionPlan(str, Enum):
    FREE = "FREE"
    PREMIUM = "PREMIUM"


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"
    PENDING = "PENDING"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class PaymentMethod(str, Enum):
    STRIPE = "STRIPE"
    PAYPAL = "PAYPAL"
    SQUARE = "SQUARE"
    MANUAL = "MANUAL"


# ============================================================
# USER
# ============================================================
class User(SQLModel, table=True):
    __tablename__ = "user"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    email: str = Field(index=True, unique=True, max_length=255, nullable=False)
    name: str = Field(max_length=100)
    password_hash: str = Field(nullable=False)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# CONTACT (shared lead, not owned by any user)
# ============================================================
class Contact(SQLModel, table=True):
    __tablename__ = "contact"
    __table_args__ = (Index("ix_contact_type_phase", "type", "phase"),)

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    type: ContactType
    phase: ContactPhase = Field(default=ContactPhase.RAW)

    name: str = Field(max_length=200)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    company: Optional[str] = Field(default=None, max_length=200)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    zip_code: Optional[str] = Field(default=None, max_length=20)
    country: Optional[str] = Field(default=None, max_length=100)
    website: Optional[str] = Field(default=None, max_length=255)
    source: Optional[str] = Field(default=None, max_length=100)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    delivered_at: Optional[datetime] = Field(default=None, index=True)


# ============================================================
# USER RECORD (append-only evidence a user claimed a contact)
# ============================================================
class UserRecord(SQLModel, table=True):
    __tablename__ = "user_record"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(index=True, max_length=32)
    contact_id: str = Field(foreign_key="contact.id", index=True, max_length=32)
    phase: ContactPhase
    delivered_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# VALIDATION HISTORY (one row per validation batch)
# ============================================================
class ValidationHistory(SQLModel, table=True):
    __tablename__ = "validation_history"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(index=True, max_length=32)
    type: ValidationType
    file_path: str = Field(max_length=500)
    total: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)


# ============================================================
# SUBSCRIPTION
# ============================================================
class Subscription(SQLModel, table=True):
    __tablename__ = "subscription"
    __table_args__ = (
        Index("ix_subscription_user_status_end", "user_id", "status", "end_date"),
    )

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(max_length=32)
    plan: SubscriptionPlan = Field(default=SubscriptionPlan.PREMIUM)
    status: SubscriptionStatus = Field(default=SubscriptionStatus.ACTIVE)
    start_date: datetime = Field(default_factory=utcnow)
    end_date: datetime

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def is_active_at(self, moment: datetime) -> bool:
        """Active means ACTIVE status *and* a future end date; the status alone is not trusted."""
        return self.status == SubscriptionStatus.ACTIVE and self.end_date > moment


# ============================================================
# PAYMENT
# ============================================================
class Payment(SQLModel, table=True):
    __tablename__ = "payment"

    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    user_id: str = Field(index=True, max_length=32)
    subscription_id: Optional[str] = Field(default=None, foreign_key="subscription.id", index=True, max_length=32)

    amount: float = Field(default=0.0)
    currency: str = Field(default="USD", max_length=3)
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    method: PaymentMethod = Field(default=PaymentMethod.MANUAL)
    transaction_id: Optional[str] = Field(default=None, max_length=255)
    payment_metadata: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# ============================================================
# EXPORTS
# ============================================================
__all__ = [
    "User",
    "Contact",
    "UserRecord",
    "ValidationHistory",
    "Subscription",
    "Payment",
    "ContactType",
    "ContactPhase",
    "ValidationType",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "PaymentStatus",
    "PaymentMethod",
    "new_id",
]
