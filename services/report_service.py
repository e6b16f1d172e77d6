# ================================================================
# services/report_service.py: CSV reports of validation batches
# ================================================================
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import List, Optional
import csv
import logging

from core.config import settings
from core.exceptions import BadRequest
from core.timeutils import utcnow
from models.models import new_id
from schemas.validation_schema import PhoneValidationResult

logger = logging.getLogger(__name__)

REPORT_HEADERS = [
    "Phone Number",
    "Valid",
    "Is Reachable",
    "Country Code",
    "E.164",
    "National Format",
    "Validated At",
]


@dataclass(frozen=True)
class SavedReport:
    file_name: str
    public_path: str  # relative to the uploads dir, served under /static


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def report_row(result: PhoneValidationResult) -> List[str]:
    return [
        result.phone_number,
        _yes_no(result.is_valid),
        _yes_no(result.is_reachable),
        result.country_code or "",
        result.formatted_number or "",
        result.national_format or "",
        result.validated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
    ]


def save_validation_results(
    results: List[PhoneValidationResult],
    prefix: Optional[str] = None,
    uploads_dir: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SavedReport:
    """
    Write ``results`` to ``<uploads>/csvs/YYYY/MM/<PREFIX>ddmmyyHHMM-<suffix>.csv``.

    The random suffix keeps batches saved within the same minute apart.
    """
    if not results:
        raise BadRequest("No validation results provided")

    now = now or utcnow()
    prefix = prefix or settings.REPORT_PREFIX
    base = Path(uploads_dir or settings.UPLOADS_DIR)

    year = now.strftime("%Y")
    month = now.strftime("%m")
    file_name = f"{prefix}{now.strftime('%d%m%y%H%M')}-{new_id()[:8]}.csv"

    directory = base / "csvs" / year / month
    directory.mkdir(parents=True, exist_ok=True)

    with open(directory / file_name, "w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(REPORT_HEADERS)
        writer.writerows(report_row(r) for r in results)

    public_path = f"csvs/{year}/{month}/{file_name}"
    logger.info("💾 Saved validation report %s (%d rows)", public_path, len(results))
    return SavedReport(file_name=file_name, public_path=public_path)
