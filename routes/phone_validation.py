from typing import List
import csv
import io
import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from core.config import settings
from core.database import get_session
from core.exceptions import BadRequest
from core.security import get_current_user
from core.timeutils import utcnow
from models.models import User, ValidationType
from schemas.validation_schema import (
    BulkValidationRequest,
    PhoneValidationResult,
    SingleValidationRequest,
    ValidationBatchResponse,
    ValidationHistoryRead,
    ValidationStatus,
)
from services import quota_service, report_service, usage_ledger
from services.phone_validation_service import (
    TwilioLookupClient,
    get_lookup_client,
    validate_bulk_phone_numbers,
    validate_phone_number,
)

router = APIRouter(tags=["Phone Validation"])
logger = logging.getLogger(__name__)

CSV_CONTENT_TYPES = {"text/csv", "application/vnd.ms-excel"}


# ==========================================================
# 🔧 Helpers
# ==========================================================
def _summarize(
    results: List[PhoneValidationResult], file_path: str
) -> ValidationBatchResponse:
    def count(status: ValidationStatus) -> int:
        return sum(1 for r in results if r.status == status)

    return ValidationBatchResponse(
        total=len(results),
        valid=count(ValidationStatus.VALID),
        invalid=count(ValidationStatus.INVALID),
        unknown=count(ValidationStatus.UNKNOWN),
        results=results,
        file_path=file_path,
        processed_at=utcnow(),
    )


async def _validate_and_record(
    session: Session,
    user: User,
    phone_numbers: List[str],
    validation_type: ValidationType,
    client: TwilioLookupClient,
) -> ValidationBatchResponse:
    """
    Quota check -> lookups -> CSV report -> one history row for the whole batch.

    Database and file work runs in the threadpool; only the lookups stay on the loop.
    """
    total = len(phone_numbers)
    await run_in_threadpool(quota_service.ensure_can_validate, session, user.id, total)

    if validation_type == ValidationType.SINGLE:
        results = [await validate_phone_number(phone_numbers[0], client)]
    else:
        results = await validate_bulk_phone_numbers(phone_numbers, client)

    report = await run_in_threadpool(report_service.save_validation_results, results)
    await run_in_threadpool(
        usage_ledger.record_validation, session, user.id, validation_type, report.public_path, total
    )

    logger.info("📞 User %s validated %d numbers (%s)", user.id, total, validation_type.value)
    return _summarize(results, report.public_path)


def _extract_first_column(raw: bytes) -> List[str]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise BadRequest("CSV file must be UTF-8 encoded")

    numbers = []
    for row in csv.reader(io.StringIO(text)):
        if row and row[0].strip():
            numbers.append(row[0].strip())
    return numbers


# ==========================================================
# 📞 Endpoints
# ==========================================================
@router.post("/single", response_model=ValidationBatchResponse)
async def validate_single(
    payload: SingleValidationRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: TwilioLookupClient = Depends(get_lookup_client),
):
    if not payload.phone_number.strip():
        raise BadRequest("Phone number is required")
    return await _validate_and_record(
        session, current_user, [payload.phone_number], ValidationType.SINGLE, client
    )


@router.post("/bulk", response_model=ValidationBatchResponse)
async def validate_bulk(
    payload: BulkValidationRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: TwilioLookupClient = Depends(get_lookup_client),
):
    if len(payload.phone_numbers) > settings.MAX_BULK_NUMBERS:
        raise BadRequest(f"Maximum {settings.MAX_BULK_NUMBERS} phone numbers allowed per request")
    return await _validate_and_record(
        session, current_user, payload.phone_numbers, ValidationType.BULK, client
    )


@router.post("/csv", response_model=ValidationBatchResponse)
async def validate_csv(
    csv_file: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    client: TwilioLookupClient = Depends(get_lookup_client),
):
    filename = (csv_file.filename or "").lower()
    if not filename.endswith(".csv") and csv_file.content_type not in CSV_CONTENT_TYPES:
        raise BadRequest("Only CSV files are allowed")

    raw = await csv_file.read()
    if len(raw) > settings.MAX_CSV_BYTES:
        raise BadRequest("CSV file is too large")

    phone_numbers = _extract_first_column(raw)
    if not phone_numbers:
        raise BadRequest("No phone numbers found in CSV file")
    if len(phone_numbers) > settings.MAX_CSV_NUMBERS:
        raise BadRequest(f"Maximum {settings.MAX_CSV_NUMBERS} phone numbers allowed per CSV file")

    return await _validate_and_record(
        session, current_user, phone_numbers, ValidationType.CSV, client
    )


@router.get("/history", response_model=List[ValidationHistoryRead])
def validation_history(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return usage_ledger.list_history(session, current_user.id)
