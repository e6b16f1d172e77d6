# ==================================================================================
# core/config.py: LeadVault Configuration (Twilio + Stripe + Square + Pydantic v2)
# ==================================================================================
from typing import List, Optional
import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ------------------------
    # DATABASE CONFIG
    # ------------------------
    DATABASE_URL: str = "sqlite:///./leadvault.db"

    # ------------------------
    # SECURITY CONFIG
    # ------------------------
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # ------------------------
    # FRONTEND & BACKEND CONFIG
    # ------------------------
    FRONTEND_URL: str = "http://localhost:5173"
    BACKEND_URL: str = "http://localhost:8000"

    # ------------------------
    # FREEMIUM / USAGE LIMITS
    # ------------------------
    FREE_TIER_LIMIT: int = 5
    PREMIUM_PRICE: float = 19.99
    PREMIUM_DURATION_DAYS: int = 30

    # ------------------------
    # CONTACT LIFECYCLE & SWEEPS
    # ------------------------
    CONTACT_RETENTION_MONTHS: int = 3
    PHASE_SWEEP_INTERVAL_SECONDS: int = 24 * 60 * 60
    SUBSCRIPTION_SWEEP_INTERVAL_SECONDS: int = 24 * 60 * 60
    ENABLE_SCHEDULER: bool = True

    # ------------------------
    # PHONE VALIDATION (Twilio Lookup v2)
    # ------------------------
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    LOOKUP_TIMEOUT_SECONDS: float = 10.0
    BULK_CHUNK_SIZE: int = 10
    BULK_CHUNK_DELAY_SECONDS: float = 0.5
    MAX_BULK_NUMBERS: int = 1000
    MAX_CSV_NUMBERS: int = 10000
    MAX_CSV_BYTES: int = 10 * 1024 * 1024

    # ------------------------
    # REPORTS / UPLOADS
    # ------------------------
    UPLOADS_DIR: str = "uploads"
    REPORT_PREFIX: str = "VNC"

    # ------------------------
    # STRIPE CONFIG
    # ------------------------
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_CURRENCY: str = "usd"
    PRODUCT_NAME: str = "Premium Subscription"

    # ------------------------
    # SQUARE CONFIG
    # ------------------------
    SQUARE_ACCESS_TOKEN: Optional[str] = None
    SQUARE_LOCATION_ID: Optional[str] = None
    SQUARE_ENVIRONMENT: str = "sandbox"  # 'sandbox' | 'production'
    SQUARE_WEBHOOK_SIGNATURE_KEY: Optional[str] = None
    SQUARE_CURRENCY: str = "USD"
    SQUARE_API_VERSION: str = "2024-01-18"

    @property
    def SQUARE_BASE_URL(self) -> str:
        if self.SQUARE_ENVIRONMENT.lower() == "production":
            return "https://connect.squareup.com"
        return "https://connect.squareupsandbox.com"

    @property
    def PREMIUM_PRICE_CENTS(self) -> int:
        return int(round(self.PREMIUM_PRICE * 100))

    @property
    def CHECKOUT_SUCCESS_URL(self) -> str:
        """Default redirect after a completed checkout."""
        return f"{self.FRONTEND_URL}/payment/success"

    @property
    def CHECKOUT_CANCEL_URL(self) -> str:
        return f"{self.FRONTEND_URL}/payment/cancel"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [self.FRONTEND_URL, "http://127.0.0.1:5173"]

    # ------------------------
    # ENVIRONMENT SETTINGS
    # ------------------------
    ENVIRONMENT: str = "development"  # 'development' | 'production'
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    @property
    def IS_PRODUCTION(self) -> bool:
        """Convenience helper to check if running in production"""
        return self.ENVIRONMENT.lower() == "production"

    # ------------------------
    # Pydantic v2 Settings
    # ------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# ------------------------
# Global Settings Loader
# ------------------------
try:
    settings = Settings()
except ValidationError as e:
    print("❌ Environment configuration error: missing or invalid settings!")
    print(e)
    sys.exit(1)
