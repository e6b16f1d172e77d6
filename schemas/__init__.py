from .contact_schema import ContactCreate, ContactRead, PhaseUpdate, UserRecordCreate, UserRecordRead, UserLeadRead
from .subscription_schema import (
    LimitType, CheckoutProvider,
    ValidationLimit, UserUsage, SubscriptionStatusResponse,
    SubscriptionRead, PaymentRead, SubscriptionCreatedResponse, SubscriptionHistoryResponse,
    CheckoutRequest, CheckoutResponse,
)
from .user_schema import UserCreate, UserLogin, UserRead, TokenResponse
from .validation_schema import (
    ValidationStatus,
    ValidLookup, InvalidLookup, ProviderErrorLookup, LookupOutcome,
    PhoneValidationResult, ValidationBatchResponse,
    SingleValidationRequest, BulkValidationRequest, ValidationHistoryRead,
)

__all__ = [
    # Contact
    "ContactCreate", "ContactRead", "PhaseUpdate", "UserRecordCreate", "UserRecordRead", "UserLeadRead",

    # Subscription / quota / checkout
    "LimitType", "CheckoutProvider",
    "ValidationLimit", "UserUsage", "SubscriptionStatusResponse",
    "SubscriptionRead", "PaymentRead", "SubscriptionCreatedResponse", "SubscriptionHistoryResponse",
    "CheckoutRequest", "CheckoutResponse",

    # User
    "UserCreate", "UserLogin", "UserRead", "TokenResponse",

    # Phone validation
    "ValidationStatus",
    "ValidLookup", "InvalidLookup", "ProviderErrorLookup", "LookupOutcome",
    "PhoneValidationResult", "ValidationBatchResponse",
    "SingleValidationRequest", "BulkValidationRequest", "ValidationHistoryRead",
]
