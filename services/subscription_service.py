# ================================================================
# services/subscription_service.py: Subscription store & premium grants
# ================================================================
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
import logging

from sqlmodel import Session, select

from core.config import settings
from core.exceptions import Conflict, NotFound
from core.timeutils import utcnow
from models.models import (
    Payment,
    PaymentMethod,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from services import payment_service

logger = logging.getLogger(__name__)


# ------------------------
# STORE
# ------------------------
def create_subscription(
    session: Session,
    user_id: str,
    plan: SubscriptionPlan = SubscriptionPlan.PREMIUM,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    duration_days: Optional[int] = None,
    commit: bool = True,
) -> Subscription:
    now = utcnow()
    start_date = start_date or now
    if end_date is None:
        end_date = start_date + timedelta(days=duration_days or settings.PREMIUM_DURATION_DAYS)

    subscription = Subscription(
        user_id=user_id,
        plan=plan,
        status=SubscriptionStatus.ACTIVE,
        start_date=start_date,
        end_date=end_date,
        created_at=now,
        updated_at=now,
    )
    session.add(subscription)
    if commit:
        session.commit()
        session.refresh(subscription)
    else:
        session.flush()
    return subscription


def find_active_subscription(
    session: Session, user_id: str, now: Optional[datetime] = None
) -> Optional[Subscription]:
    """
    Newest subscription that is ACTIVE *and* not past its end date.

    Rows still marked ACTIVE after ``end_date`` are ignored here even before
    the expiry sweep flips them.
    """
    now = now or utcnow()
    statement = (
        select(Subscription)
        .where(
            Subscription.user_id == user_id,
            Subscription.status == SubscriptionStatus.ACTIVE,
            Subscription.end_date > now,
        )
        .order_by(Subscription.created_at.desc())
    )
    return session.exec(statement).first()


def list_subscriptions(session: Session, user_id: str) -> List[Subscription]:
    statement = (
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(Subscription.created_at.desc())
    )
    return list(session.exec(statement).all())


def update_status(session: Session, subscription_id: str, status: SubscriptionStatus) -> Subscription:
    subscription = session.get(Subscription, subscription_id)
    if not subscription:
        raise NotFound("Subscription not found", {"subscription_id": subscription_id})

    subscription.status = status
    subscription.updated_at = utcnow()
    session.add(subscription)
    session.commit()
    session.refresh(subscription)
    return subscription


def find_lapsed_active(session: Session, now: datetime) -> List[Subscription]:
    statement = select(Subscription).where(
        Subscription.status == SubscriptionStatus.ACTIVE,
        Subscription.end_date <= now,
    )
    return list(session.exec(statement).all())


# ------------------------
# PREMIUM GRANTS
# ------------------------
def grant_premium_for_payment(
    session: Session,
    payment_id: str,
    now: Optional[datetime] = None,
    duration_days: Optional[int] = None,
) -> Optional[Subscription]:
    """
    Turn a provider-confirmed payment into a premium subscription, at most once.

    Unknown payments and payments that already carry a subscription are
    dropped (logged, ``None``). The subscription insert and the conditional
    link share one transaction, so a delivery that loses the race leaves no
    orphan subscription behind.
    """
    now = now or utcnow()
    payment = session.get(Payment, payment_id)
    if not payment:
        logger.warning("⚠️ Payment %s not found, dropping completion event", payment_id)
        return None

    if payment.subscription_id:
        logger.info("ℹ️ Payment %s already linked to %s, duplicate delivery ignored",
                    payment_id, payment.subscription_id)
        return None

    try:
        subscription = create_subscription(
            session,
            user_id=payment.user_id,
            plan=SubscriptionPlan.PREMIUM,
            start_date=now,
            end_date=now + timedelta(days=duration_days or settings.PREMIUM_DURATION_DAYS),
            commit=False,
        )
        if not payment_service.link_subscription_if_unlinked(session, payment_id, subscription.id):
            session.rollback()
            logger.info("ℹ️ Payment %s was linked concurrently, duplicate delivery ignored", payment_id)
            return None

        session.commit()
    except Exception:
        session.rollback()
        raise

    session.refresh(subscription)
    logger.info("✅ Premium subscription %s granted to user %s (payment %s)",
                subscription.id, subscription.user_id, payment_id)
    return subscription


def create_premium_subscription(
    session: Session,
    user_id: str,
    method: PaymentMethod = PaymentMethod.MANUAL,
    now: Optional[datetime] = None,
) -> Tuple[Subscription, Payment]:
    """Grant premium directly, recording an already-completed payment for it."""
    now = now or utcnow()
    if find_active_subscription(session, user_id, now=now):
        raise Conflict("You already have an active subscription")

    subscription = create_subscription(
        session,
        user_id=user_id,
        plan=SubscriptionPlan.PREMIUM,
        start_date=now,
    )
    payment = payment_service.create_payment(
        session,
        user_id=user_id,
        amount=settings.PREMIUM_PRICE,
        currency="USD",
        method=method,
        status=PaymentStatus.COMPLETED,
        subscription_id=subscription.id,
    )
    return subscription, payment
