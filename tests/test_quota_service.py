"""
Tests for the freemium quota engine and the usage ledger behind it.

Usage is always the sum of ``total`` over validation history; an ACTIVE
subscription only counts while its end date is in the future.
"""
from datetime import timedelta

import pytest

from conftest import add_history, make_subscription, make_user
from core.exceptions import QuotaExceeded
from models.models import SubscriptionStatus, ValidationType
from schemas.subscription_schema import LimitType
from services import quota_service, usage_ledger

FREE_LIMIT = 5


# =============================================================================
# TEST: USAGE LEDGER
# =============================================================================

class TestUsageLedger:

    def test_no_history_means_zero(self, session, user):
        assert usage_ledger.total_validations_used(session, user.id) == 0

    def test_sums_totals_across_types(self, session, user):
        add_history(session, user.id, 1, ValidationType.SINGLE)
        add_history(session, user.id, 3, ValidationType.BULK)
        add_history(session, user.id, 7, ValidationType.CSV)

        assert usage_ledger.total_validations_used(session, user.id) == 11

    def test_other_users_are_not_counted(self, session, user):
        other = make_user(session, email="other@example.com")
        add_history(session, other.id, 4)

        assert usage_ledger.total_validations_used(session, user.id) == 0

    def test_record_validation_appends_row(self, session, user):
        usage_ledger.record_validation(session, user.id, ValidationType.CSV, "csvs/2025/01/VNC.csv", 12)

        history = usage_ledger.list_history(session, user.id)
        assert len(history) == 1
        assert history[0].total == 12
        assert history[0].file_path == "csvs/2025/01/VNC.csv"


# =============================================================================
# TEST: VALIDATION LIMIT
# =============================================================================

class TestGetValidationLimit:

    def test_new_user_gets_full_free_allowance(self, session, user, now):
        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.FREE
        assert limit.can_validate is True
        assert limit.remaining_free == FREE_LIMIT
        assert limit.has_active_subscription is False

    def test_one_below_limit_can_still_validate(self, session, user, now):
        add_history(session, user.id, FREE_LIMIT - 1)

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.can_validate is True
        assert limit.remaining_free == 1

    def test_exactly_at_limit_is_exceeded(self, session, user, now):
        add_history(session, user.id, 2)
        add_history(session, user.id, FREE_LIMIT - 2)

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.EXCEEDED
        assert limit.can_validate is False
        assert limit.remaining_free == 0
        assert limit.message == quota_service.LIMIT_REACHED_MESSAGE

    def test_over_limit_never_goes_negative(self, session, user, now):
        add_history(session, user.id, FREE_LIMIT + 10)

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.remaining_free == 0

    def test_active_subscription_is_premium(self, session, user, now):
        add_history(session, user.id, FREE_LIMIT * 3)
        subscription = make_subscription(session, user.id, end_date=now + timedelta(days=10))

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.PREMIUM
        assert limit.can_validate is True
        assert limit.has_active_subscription is True
        assert limit.subscription_end_date == subscription.end_date

    def test_lapsed_active_subscription_is_ignored(self, session, user, now):
        """ACTIVE status with a past end date falls through to the free-tier logic."""
        make_subscription(session, user.id, end_date=now - timedelta(seconds=1))

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.FREE
        assert limit.has_active_subscription is False

        add_history(session, user.id, FREE_LIMIT)
        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)
        assert limit.limit_type == LimitType.EXCEEDED

    def test_cancelled_subscription_is_ignored(self, session, user, now):
        make_subscription(
            session, user.id, end_date=now + timedelta(days=10), status=SubscriptionStatus.CANCELLED
        )

        limit = quota_service.get_validation_limit(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.FREE

    def test_free_limit_comes_from_settings_by_default(self, session, user, now, monkeypatch):
        from core.config import settings

        monkeypatch.setattr(settings, "FREE_TIER_LIMIT", 2)
        add_history(session, user.id, 2)

        assert quota_service.get_validation_limit(session, user.id, now=now).limit_type == LimitType.EXCEEDED


# =============================================================================
# TEST: BATCH GATE
# =============================================================================

class TestEnsureCanValidate:

    def test_batch_within_remaining_passes(self, session, user, now):
        add_history(session, user.id, 2)

        limit = quota_service.ensure_can_validate(session, user.id, 3, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.FREE

    def test_batch_larger_than_remaining_is_rejected_whole(self, session, user, now):
        add_history(session, user.id, 2)

        with pytest.raises(QuotaExceeded) as exc_info:
            quota_service.ensure_can_validate(session, user.id, 4, now=now, free_limit=FREE_LIMIT)

        assert exc_info.value.details["requested"] == 4
        assert exc_info.value.details["limit"]["remaining_free"] == 3
        # nothing is consumed by a rejected batch
        assert usage_ledger.total_validations_used(session, user.id) == 2

    def test_exceeded_user_is_rejected(self, session, user, now):
        add_history(session, user.id, FREE_LIMIT)

        with pytest.raises(QuotaExceeded) as exc_info:
            quota_service.ensure_can_validate(session, user.id, 1, now=now, free_limit=FREE_LIMIT)

        assert exc_info.value.message == quota_service.LIMIT_REACHED_MESSAGE
        assert exc_info.value.details["limit"]["limit_type"] == "exceeded"

    def test_premium_has_no_batch_cap(self, session, user, now):
        make_subscription(session, user.id, end_date=now + timedelta(days=1))

        limit = quota_service.ensure_can_validate(session, user.id, 10_000, now=now, free_limit=FREE_LIMIT)

        assert limit.limit_type == LimitType.PREMIUM


# =============================================================================
# TEST: USAGE SUMMARY
# =============================================================================

class TestGetUserUsage:

    def test_free_user_usage(self, session, user, now):
        add_history(session, user.id, 3)

        usage = quota_service.get_user_usage(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert usage.free_validations_used == 3
        assert usage.free_validations_remaining == 2
        assert usage.has_active_subscription is False
        assert usage.subscription_plan is None

    def test_premium_user_usage(self, session, user, now):
        add_history(session, user.id, 3)
        make_subscription(session, user.id, end_date=now + timedelta(days=5))

        usage = quota_service.get_user_usage(session, user.id, now=now, free_limit=FREE_LIMIT)

        assert usage.has_active_subscription is True
        assert usage.free_validations_used == 0
        assert usage.subscription_plan == "PREMIUM"
