# ================================================================
# services/payment_service.py: Payment records (provider agnostic)
# ================================================================
from typing import Any, Dict, List, Optional

from sqlalchemy import update
from sqlmodel import Session, select

from core.exceptions import NotFound
from core.timeutils import utcnow
from models.models import Payment, PaymentMethod, PaymentStatus


def create_payment(
    session: Session,
    user_id: str,
    amount: float,
    currency: str = "USD",
    method: PaymentMethod = PaymentMethod.MANUAL,
    status: PaymentStatus = PaymentStatus.PENDING,
    subscription_id: Optional[str] = None,
    transaction_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Payment:
    now = utcnow()
    payment = Payment(
        user_id=user_id,
        amount=amount,
        currency=currency.upper(),
        method=method,
        status=status,
        subscription_id=subscription_id,
        transaction_id=transaction_id,
        payment_metadata=metadata,
        created_at=now,
        updated_at=now,
    )
    session.add(payment)
    session.commit()
    session.refresh(payment)
    return payment


def get_payment(session: Session, payment_id: str) -> Optional[Payment]:
    return session.get(Payment, payment_id)


def list_payments(session: Session, user_id: str) -> List[Payment]:
    statement = (
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc())
    )
    return list(session.exec(statement).all())


def update_status(
    session: Session,
    payment_id: str,
    status: PaymentStatus,
    transaction_id: Optional[str] = None,
) -> Optional[Payment]:
    payment = session.get(Payment, payment_id)
    if not payment:
        return None

    payment.status = status
    if transaction_id:
        payment.transaction_id = transaction_id
    payment.updated_at = utcnow()
    session.add(payment)
    session.commit()
    session.refresh(payment)
    return payment


def update_metadata(session: Session, payment_id: str, values: Dict[str, Any]) -> Payment:
    payment = session.get(Payment, payment_id)
    if not payment:
        raise NotFound("Payment not found", {"payment_id": payment_id})

    # JSON columns only persist on reassignment
    payment.payment_metadata = {**(payment.payment_metadata or {}), **values}
    payment.updated_at = utcnow()
    session.add(payment)
    session.commit()
    session.refresh(payment)
    return payment


def link_subscription_if_unlinked(session: Session, payment_id: str, subscription_id: str) -> bool:
    """
    Conditionally point a payment at a subscription.

    The ``subscription_id IS NULL`` guard makes this the single linearization
    point for duplicate webhook deliveries: exactly one caller sees a row
    updated. Does not commit; the caller owns the transaction.
    """
    statement = (
        update(Payment)
        .where(Payment.id == payment_id, Payment.subscription_id.is_(None))
        .values(subscription_id=subscription_id, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = session.execute(statement)
    return result.rowcount == 1
