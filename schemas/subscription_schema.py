# subscription_schema.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum

from models.models import SubscriptionPlan, SubscriptionStatus, PaymentStatus, PaymentMethod


class LimitType(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    EXCEEDED = "exceeded"


class CheckoutProvider(str, Enum):
    STRIPE = "stripe"
    SQUARE = "square"


# ---------------------------
# Quota
# ---------------------------
class ValidationLimit(BaseModel):
    can_validate: bool
    remaining_free: int
    has_active_subscription: bool
    subscription_end_date: Optional[datetime] = None
    limit_type: LimitType
    message: Optional[str] = None


class UserUsage(BaseModel):
    free_validations_used: int
    free_validations_remaining: int
    has_active_subscription: bool
    subscription_end_date: Optional[datetime] = None
    subscription_plan: Optional[SubscriptionPlan] = None


class SubscriptionStatusResponse(BaseModel):
    usage: UserUsage
    limit: ValidationLimit
    premium_price: float


# ---------------------------
# Subscription / Payment
# ---------------------------
class SubscriptionRead(BaseModel):
    id: str
    user_id: str
    plan: SubscriptionPlan
    status: SubscriptionStatus
    start_date: datetime
    end_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentRead(BaseModel):
    id: str
    user_id: str
    subscription_id: Optional[str] = None
    amount: float
    currency: str
    status: PaymentStatus
    method: PaymentMethod
    transaction_id: Optional[str] = None
    payment_metadata: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubscriptionCreatedResponse(BaseModel):
    success: bool = True
    message: str
    subscription: SubscriptionRead
    payment: PaymentRead


class SubscriptionHistoryResponse(BaseModel):
    subscriptions: List[SubscriptionRead]
    payments: List[PaymentRead]


# ---------------------------
# Checkout
# ---------------------------
class CheckoutRequest(BaseModel):
    provider: CheckoutProvider = CheckoutProvider.STRIPE
    success_url: Optional[str] = Field(default=None, max_length=2000)
    cancel_url: Optional[str] = Field(default=None, max_length=2000)


class CheckoutResponse(BaseModel):
    provider: CheckoutProvider
    checkout_url: str
    payment_id: str
    reference: str
