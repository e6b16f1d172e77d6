import logging

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from core.config import settings
from core.database import get_session
from core.security import get_current_user
from models.models import User
from schemas.subscription_schema import (
    CheckoutProvider,
    CheckoutRequest,
    CheckoutResponse,
    PaymentRead,
    SubscriptionCreatedResponse,
    SubscriptionHistoryResponse,
    SubscriptionRead,
    SubscriptionStatusResponse,
)
from services import payment_service, quota_service, square_service, stripe_service, subscription_service
from services.square_service import SquareClient, get_square_client

router = APIRouter(tags=["Subscription"])
logger = logging.getLogger(__name__)


@router.get("/status", response_model=SubscriptionStatusResponse)
def subscription_status(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return SubscriptionStatusResponse(
        usage=quota_service.get_user_usage(session, current_user.id),
        limit=quota_service.get_validation_limit(session, current_user.id),
        premium_price=settings.PREMIUM_PRICE,
    )


@router.post("/checkout", response_model=CheckoutResponse)
def create_checkout(
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
    square_client: SquareClient = Depends(get_square_client),
):
    """Start a premium purchase with the chosen provider and return the redirect URL."""
    if payload.provider == CheckoutProvider.SQUARE:
        payment, url, reference = square_service.create_checkout_link(
            session, current_user, square_client, success_url=payload.success_url
        )
    else:
        payment, url, reference = stripe_service.create_checkout_session(
            session, current_user, success_url=payload.success_url, cancel_url=payload.cancel_url
        )

    return CheckoutResponse(
        provider=payload.provider,
        checkout_url=url,
        payment_id=payment.id,
        reference=reference,
    )


@router.post("/create", response_model=SubscriptionCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_subscription(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    subscription, payment = subscription_service.create_premium_subscription(session, current_user.id)
    logger.info("💳 Manual premium subscription %s for user %s", subscription.id, current_user.id)
    return SubscriptionCreatedResponse(
        message="Premium subscription activated successfully",
        subscription=SubscriptionRead.model_validate(subscription),
        payment=PaymentRead.model_validate(payment),
    )


@router.get("/history", response_model=SubscriptionHistoryResponse)
def subscription_history(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    return SubscriptionHistoryResponse(
        subscriptions=[
            SubscriptionRead.model_validate(s)
            for s in subscription_service.list_subscriptions(session, current_user.id)
        ],
        payments=[
            PaymentRead.model_validate(p)
            for p in payment_service.list_payments(session, current_user.id)
        ],
    )
