# ================================================================
# services/phone_validation_service.py: Twilio Lookup v2 validation
# ================================================================
from datetime import datetime
from typing import Awaitable, Callable, List, Optional
import asyncio
import logging
import re
from urllib.parse import quote

import httpx

from core.config import settings
from core.timeutils import utcnow
from schemas.validation_schema import (
    InvalidLookup,
    LookupOutcome,
    PhoneValidationResult,
    ProviderErrorLookup,
    ValidationStatus,
    ValidLookup,
)

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s\-\(\)\.]")
_NON_DIGITS = re.compile(r"\D")
_DIGITS_ONLY = re.compile(r"[0-9]+")


# ------------------------
# NORMALIZATION
# ------------------------
def normalize_phone_number(phone: str) -> str:
    """
    Reduce user input to bare digits (no leading ``+``).

    ``+44 20 7946-0958`` -> ``442079460958``
    ``(415) 555.2671``   -> ``14155552671``  (10 digits, US prefix added)
    ``044 2079 460958``  -> ``442079460958`` (one leading zero dropped)
    """
    cleaned = _SEPARATORS.sub("", phone)
    if cleaned.startswith("+"):
        return cleaned[1:]

    cleaned = _NON_DIGITS.sub("", cleaned)
    if cleaned.startswith("0"):
        cleaned = cleaned[1:]

    if len(cleaned) == 10 and not cleaned.startswith("1"):
        return f"1{cleaned}"
    return cleaned


def to_e164(normalized: str) -> str:
    return normalized if normalized.startswith("+") else f"+{normalized}"


# ------------------------
# PROVIDER CLIENT
# ------------------------
class TwilioLookupClient:
    BASE_URL = "https://lookups.twilio.com/v2/PhoneNumbers"

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    async def lookup(self, e164: str) -> LookupOutcome:
        """Ask Twilio about one number. Never raises; failures come back as ``ProviderErrorLookup``."""
        if not self.configured:
            return ProviderErrorLookup(error="Phone lookup provider is not configured")

        try:
            async with httpx.AsyncClient(
                auth=(self.account_sid, self.auth_token),
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.get(f"{self.BASE_URL}/{quote(e164, safe='+')}")
        except httpx.HTTPError as e:
            logger.error("❌ Twilio Lookup request failed for %s: %s", e164, e)
            return ProviderErrorLookup(error=f"Lookup request failed: {e}")

        if response.status_code == 404:
            return InvalidLookup()

        if response.status_code != 200:
            logger.error("❌ Twilio Lookup error %s for %s: %s", response.status_code, e164, response.text)
            return ProviderErrorLookup(error=f"Lookup provider returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return ProviderErrorLookup(error="Lookup provider returned an unreadable response")

        if not data.get("valid"):
            return InvalidLookup(country_code=data.get("country_code"))

        return ValidLookup(
            country_code=data.get("country_code"),
            formatted_number=data.get("phone_number") or e164,
            national_format=data.get("national_format"),
        )


def get_lookup_client() -> TwilioLookupClient:
    """FastAPI dependency; overridden in tests."""
    return TwilioLookupClient(
        settings.TWILIO_ACCOUNT_SID,
        settings.TWILIO_AUTH_TOKEN,
        timeout=settings.LOOKUP_TIMEOUT_SECONDS,
    )


# ------------------------
# VALIDATION
# ------------------------
def _to_result(phone_number: str, outcome: LookupOutcome, validated_at: datetime) -> PhoneValidationResult:
    if isinstance(outcome, ValidLookup):
        return PhoneValidationResult(
            phone_number=phone_number,
            status=ValidationStatus.VALID,
            is_valid=True,
            is_reachable=True,
            country_code=outcome.country_code,
            formatted_number=outcome.formatted_number,
            national_format=outcome.national_format,
            validated_at=validated_at,
        )
    if isinstance(outcome, InvalidLookup):
        return PhoneValidationResult(
            phone_number=phone_number,
            status=ValidationStatus.INVALID,
            country_code=outcome.country_code,
            validated_at=validated_at,
        )
    # provider trouble is "could not validate", not "invalid"
    return PhoneValidationResult(
        phone_number=phone_number,
        status=ValidationStatus.UNKNOWN,
        error=outcome.error,
        validated_at=validated_at,
    )


async def validate_phone_number(phone: str, client: TwilioLookupClient) -> PhoneValidationResult:
    if not phone or not phone.strip():
        return PhoneValidationResult(
            phone_number=phone or "",
            status=ValidationStatus.INVALID,
            error="Empty phone number",
            validated_at=utcnow(),
        )

    normalized = normalize_phone_number(phone)
    if not normalized:
        return PhoneValidationResult(
            phone_number=phone,
            status=ValidationStatus.INVALID,
            error="Phone number contains no digits",
            validated_at=utcnow(),
        )

    if not _DIGITS_ONLY.fullmatch(normalized):
        return PhoneValidationResult(
            phone_number=phone,
            status=ValidationStatus.INVALID,
            error="Phone number contains invalid characters",
            validated_at=utcnow(),
        )

    outcome = await client.lookup(to_e164(normalized))
    return _to_result(normalized, outcome, utcnow())


async def validate_bulk_phone_numbers(
    phone_numbers: List[str],
    client: TwilioLookupClient,
    chunk_size: Optional[int] = None,
    delay_seconds: Optional[float] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> List[PhoneValidationResult]:
    """
    Validate numbers in chunks: concurrently within a chunk, with a pause
    between chunks (none after the last). Results keep input order.
    """
    chunk_size = chunk_size or settings.BULK_CHUNK_SIZE
    delay_seconds = settings.BULK_CHUNK_DELAY_SECONDS if delay_seconds is None else delay_seconds

    results: List[PhoneValidationResult] = []
    for start in range(0, len(phone_numbers), chunk_size):
        chunk = phone_numbers[start:start + chunk_size]
        results.extend(await asyncio.gather(*(validate_phone_number(p, client) for p in chunk)))

        if start + chunk_size < len(phone_numbers) and delay_seconds > 0:
            await sleep(delay_seconds)

    logger.info("📞 Validated %d phone numbers in chunks of %d", len(results), chunk_size)
    return results
