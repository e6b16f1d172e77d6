# ================================================================
# services/sweeps.py: Best-effort housekeeping batches
# ================================================================
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Iterator, List, Optional
import logging

from sqlmodel import Session

from core.config import settings
from core.timeutils import subtract_months, utcnow
from models.models import ContactPhase, SubscriptionStatus
from services import contact_service, subscription_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepOutcome:
    item_id: str
    ok: bool
    error: Optional[str] = None


@dataclass
class SweepReport:
    name: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: List[SweepOutcome] = field(default_factory=list)


def summarize(name: str, outcomes: Iterable[SweepOutcome]) -> SweepReport:
    report = SweepReport(name=name)
    for outcome in outcomes:
        report.processed += 1
        if outcome.ok:
            report.succeeded += 1
        else:
            report.failed += 1
            report.errors.append(outcome)
    return report


# ------------------------------------------------------------
# CONTACT RETENTION: DELIVERED -> CLEANED
# ------------------------------------------------------------
def iter_contact_retention(
    session: Session,
    now: Optional[datetime] = None,
    retention_months: Optional[int] = None,
) -> Iterator[SweepOutcome]:
    now = now or utcnow()
    months = settings.CONTACT_RETENTION_MONTHS if retention_months is None else retention_months
    cutoff = subtract_months(now, months)

    contact_ids = [c.id for c in contact_service.find_stale_delivered(session, cutoff)]
    for contact_id in contact_ids:
        try:
            contact_service.transition_phase(session, contact_id, ContactPhase.CLEANED, now=now)
        except Exception as e:
            session.rollback()
            logger.error("❌ Retention sweep failed for contact %s: %s", contact_id, e)
            yield SweepOutcome(contact_id, ok=False, error=str(e))
        else:
            yield SweepOutcome(contact_id, ok=True)


def run_contact_retention_sweep(
    session: Session,
    now: Optional[datetime] = None,
    retention_months: Optional[int] = None,
) -> SweepReport:
    report = summarize(
        "contact_retention",
        iter_contact_retention(session, now=now, retention_months=retention_months),
    )
    logger.info("🔄 Phase sweep completed: %d contacts moved from DELIVERED to CLEANED (%d failed)",
                report.succeeded, report.failed)
    return report


# ------------------------------------------------------------
# SUBSCRIPTION EXPIRY: ACTIVE (past end date) -> EXPIRED
# ------------------------------------------------------------
def iter_subscription_expiry(session: Session, now: Optional[datetime] = None) -> Iterator[SweepOutcome]:
    now = now or utcnow()
    subscription_ids = [s.id for s in subscription_service.find_lapsed_active(session, now)]
    for subscription_id in subscription_ids:
        try:
            subscription_service.update_status(session, subscription_id, SubscriptionStatus.EXPIRED)
        except Exception as e:
            session.rollback()
            logger.error("❌ Expiry sweep failed for subscription %s: %s", subscription_id, e)
            yield SweepOutcome(subscription_id, ok=False, error=str(e))
        else:
            yield SweepOutcome(subscription_id, ok=True)


def run_subscription_expiry_sweep(session: Session, now: Optional[datetime] = None) -> SweepReport:
    report = summarize("subscription_expiry", iter_subscription_expiry(session, now=now))
    logger.info("✅ Auto-expired %d subscriptions (%d failed)", report.succeeded, report.failed)
    return report
