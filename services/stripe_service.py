# ================================================================
# services/stripe_service.py: Stripe Checkout + webhook handling
# ================================================================
from typing import Any, Dict, Optional, Tuple
import json
import logging

import stripe
from sqlmodel import Session

from core.config import settings
from core.exceptions import InvalidSignature, ProviderUnavailable
from models.models import Payment, PaymentMethod, PaymentStatus, User
from services import payment_service, subscription_service

logger = logging.getLogger(__name__)


def _require_api_key() -> None:
    if not settings.STRIPE_SECRET_KEY:
        raise ProviderUnavailable("Stripe is not configured")
    stripe.api_key = settings.STRIPE_SECRET_KEY


# ------------------------
# CHECKOUT
# ------------------------
def create_checkout_session(
    session: Session,
    user: User,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Tuple[Payment, str, str]:
    """
    Record a PENDING payment and open a one-off Stripe Checkout Session for it.

    Returns ``(payment, checkout_url, stripe_session_id)``. When Stripe fails
    the payment stays PENDING and ``ProviderUnavailable`` is raised.
    """
    _require_api_key()

    payment = payment_service.create_payment(
        session,
        user_id=user.id,
        amount=settings.PREMIUM_PRICE,
        currency=settings.STRIPE_CURRENCY,
        method=PaymentMethod.STRIPE,
        status=PaymentStatus.PENDING,
    )

    try:
        checkout_session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=[{
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "unit_amount": settings.PREMIUM_PRICE_CENTS,
                    "product_data": {"name": settings.PRODUCT_NAME},
                },
                "quantity": 1,
            }],
            success_url=success_url or settings.CHECKOUT_SUCCESS_URL,
            cancel_url=cancel_url or settings.CHECKOUT_CANCEL_URL,
            client_reference_id=payment.id,
            customer_email=user.email,
            metadata={"payment_id": payment.id, "user_id": user.id},
        )
    except stripe.StripeError as e:
        logger.error("❌ Stripe checkout session creation failed for payment %s: %s", payment.id, e)
        raise ProviderUnavailable("Could not start Stripe checkout. Please try again.", {"payment_id": payment.id})

    payment_service.update_metadata(session, payment.id, {
        "provider": PaymentMethod.STRIPE.value,
        "stripe_session_id": checkout_session.id,
    })
    logger.info("✅ Stripe checkout session %s created for payment %s", checkout_session.id, payment.id)
    return payment, checkout_session.url, checkout_session.id


# ------------------------
# WEBHOOK
# ------------------------
def verify_and_parse_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """Check the ``Stripe-Signature`` header against the raw body and return the decoded event."""
    if not settings.STRIPE_WEBHOOK_SECRET:
        raise ProviderUnavailable("Stripe webhook secret is not configured")
    if not sig_header:
        raise InvalidSignature("Missing stripe-signature header")

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"), sig_header, settings.STRIPE_WEBHOOK_SECRET
        )
    except stripe.SignatureVerificationError as e:
        logger.warning("❌ Invalid Stripe signature: %s", e)
        raise InvalidSignature("Invalid Stripe signature")
    except UnicodeDecodeError:
        raise InvalidSignature("Invalid Stripe payload")

    try:
        return json.loads(payload)
    except ValueError:
        raise InvalidSignature("Invalid Stripe payload")


def handle_checkout_completed(session: Session, checkout: Dict[str, Any]) -> None:
    metadata = checkout.get("metadata") or {}
    payment_id = metadata.get("payment_id") or checkout.get("client_reference_id")
    if not payment_id:
        logger.error("❌ Stripe checkout %s has no payment_id metadata", checkout.get("id"))
        return

    payment = payment_service.update_status(
        session, payment_id, PaymentStatus.COMPLETED, transaction_id=checkout.get("payment_intent")
    )
    if not payment:
        logger.error("❌ Stripe webhook: payment not found %s", payment_id)
        return

    subscription_service.grant_premium_for_payment(session, payment_id)


def handle_checkout_expired(session: Session, checkout: Dict[str, Any]) -> None:
    payment_id = (checkout.get("metadata") or {}).get("payment_id")
    if not payment_id:
        return
    payment = payment_service.get_payment(session, payment_id)
    if payment and payment.status == PaymentStatus.PENDING:
        payment_service.update_status(session, payment_id, PaymentStatus.FAILED)
        logger.info("⌛ Stripe checkout expired for payment %s", payment_id)


def handle_webhook(session: Session, payload: bytes, sig_header: Optional[str]) -> str:
    event = verify_and_parse_event(payload, sig_header)
    event_type = event.get("type", "")
    data_object = (event.get("data") or {}).get("object") or {}
    logger.info("✅ Stripe webhook received: %s", event_type)

    if event_type == "checkout.session.completed":
        handle_checkout_completed(session, data_object)
    elif event_type == "checkout.session.expired":
        handle_checkout_expired(session, data_object)
    else:
        logger.info("ℹ️ Unhandled Stripe event type: %s", event_type)
    return event_type
