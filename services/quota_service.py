# ================================================================
# services/quota_service.py: Freemium validation quota
# ================================================================
from datetime import datetime
from typing import Optional

from sqlmodel import Session

from core.config import settings
from core.exceptions import QuotaExceeded
from core.timeutils import utcnow
from schemas.subscription_schema import LimitType, UserUsage, ValidationLimit
from services import subscription_service, usage_ledger

LIMIT_REACHED_MESSAGE = "Free tier limit reached. Please upgrade to continue."


def get_validation_limit(
    session: Session,
    user_id: str,
    now: Optional[datetime] = None,
    free_limit: Optional[int] = None,
) -> ValidationLimit:
    """
    Decide whether ``user_id`` may validate right now.

    premium  -> active subscription (ACTIVE and end date in the future)
    free     -> some of the free allowance is left
    exceeded -> free allowance used up
    """
    now = now or utcnow()
    free_limit = settings.FREE_TIER_LIMIT if free_limit is None else free_limit

    active = subscription_service.find_active_subscription(session, user_id, now=now)
    if active and active.is_active_at(now):
        return ValidationLimit(
            can_validate=True,
            remaining_free=0,
            has_active_subscription=True,
            subscription_end_date=active.end_date,
            limit_type=LimitType.PREMIUM,
        )

    used = usage_ledger.total_validations_used(session, user_id)
    remaining = max(0, free_limit - used)

    if remaining > 0:
        return ValidationLimit(
            can_validate=True,
            remaining_free=remaining,
            has_active_subscription=False,
            limit_type=LimitType.FREE,
        )

    return ValidationLimit(
        can_validate=False,
        remaining_free=0,
        has_active_subscription=False,
        limit_type=LimitType.EXCEEDED,
        message=LIMIT_REACHED_MESSAGE,
    )


def get_user_usage(
    session: Session,
    user_id: str,
    now: Optional[datetime] = None,
    free_limit: Optional[int] = None,
) -> UserUsage:
    now = now or utcnow()
    free_limit = settings.FREE_TIER_LIMIT if free_limit is None else free_limit

    active = subscription_service.find_active_subscription(session, user_id, now=now)
    used = 0 if active else usage_ledger.total_validations_used(session, user_id)

    return UserUsage(
        free_validations_used=used,
        free_validations_remaining=max(0, free_limit - used),
        has_active_subscription=active is not None,
        subscription_end_date=active.end_date if active else None,
        subscription_plan=active.plan if active else None,
    )


def ensure_can_validate(
    session: Session,
    user_id: str,
    requested: int,
    now: Optional[datetime] = None,
    free_limit: Optional[int] = None,
) -> ValidationLimit:
    """
    Gate a request for ``requested`` validations.

    Batches are all-or-nothing: a free user asking for more than what is left
    is rejected outright. The check is not serialized against concurrent
    requests, so the free limit is a soft limit.
    """
    limit = get_validation_limit(session, user_id, now=now, free_limit=free_limit)

    if not limit.can_validate:
        raise QuotaExceeded(LIMIT_REACHED_MESSAGE, {"limit": limit.model_dump(mode="json")})

    if limit.limit_type == LimitType.FREE and requested > limit.remaining_free:
        raise QuotaExceeded(
            f"This request needs {requested} validations but only "
            f"{limit.remaining_free} free validations remain. Please upgrade to continue.",
            {"limit": limit.model_dump(mode="json"), "requested": requested},
        )

    return limit
