# ================================================================
# services/square_service.py: Square payment links + webhook handling
# ================================================================
from typing import Any, Dict, Optional, Tuple
import base64
import hashlib
import hmac
import json
import logging

import httpx
from sqlmodel import Session

from core.config import settings
from core.exceptions import InvalidSignature, ProviderUnavailable
from models.models import Payment, PaymentMethod, PaymentStatus, User
from services import payment_service, subscription_service

logger = logging.getLogger(__name__)

COMPLETING_EVENTS = {"payment.created", "payment.updated"}


class SquareClient:
    """Minimal client for the two Square endpoints the checkout flow uses."""

    def __init__(
        self,
        access_token: Optional[str],
        location_id: Optional[str],
        base_url: str,
        api_version: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.access_token = access_token
        self.location_id = location_id
        self.base_url = base_url
        self.api_version = api_version
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.access_token and self.location_id)

    def _request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.configured:
            raise ProviderUnavailable("Square is not configured")

        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": self.api_version,
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(
                base_url=self.base_url, headers=headers, timeout=self.timeout, transport=self.transport
            ) as client:
                response = client.request(method, path, json=body)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("❌ Square %s %s failed: %s", method, path, e)
            raise ProviderUnavailable("Square request failed. Please try again.")

    def create_payment_link(
        self,
        idempotency_key: str,
        amount_cents: int,
        currency: str,
        name: str,
        redirect_url: str,
        metadata: Dict[str, str],
    ) -> Dict[str, Any]:
        body = {
            "idempotency_key": idempotency_key,
            "checkout_options": {"redirect_url": redirect_url},
            "order": {
                "location_id": self.location_id,
                "metadata": metadata,
                "line_items": [{
                    "name": name,
                    "quantity": "1",
                    "base_price_money": {"amount": amount_cents, "currency": currency},
                }],
            },
        }
        data = self._request("POST", "/v2/online-checkout/payment-links", body)
        link = data.get("payment_link") or {}
        if not link.get("url"):
            raise ProviderUnavailable("Square did not return a payment link")
        return link

    def retrieve_order(self, order_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/v2/orders/{order_id}").get("order") or {}


def get_square_client() -> SquareClient:
    return SquareClient(
        settings.SQUARE_ACCESS_TOKEN,
        settings.SQUARE_LOCATION_ID,
        base_url=settings.SQUARE_BASE_URL,
        api_version=settings.SQUARE_API_VERSION,
    )


# ------------------------
# CHECKOUT
# ------------------------
def create_checkout_link(
    session: Session,
    user: User,
    client: SquareClient,
    success_url: Optional[str] = None,
) -> Tuple[Payment, str, str]:
    """Record a PENDING payment and create a Square payment link for it."""
    if not client.configured:
        raise ProviderUnavailable("Square is not configured")

    payment = payment_service.create_payment(
        session,
        user_id=user.id,
        amount=settings.PREMIUM_PRICE,
        currency=settings.SQUARE_CURRENCY,
        method=PaymentMethod.SQUARE,
        status=PaymentStatus.PENDING,
    )

    link = client.create_payment_link(
        idempotency_key=f"square-{payment.id}",
        amount_cents=settings.PREMIUM_PRICE_CENTS,
        currency=settings.SQUARE_CURRENCY,
        name=settings.PRODUCT_NAME,
        redirect_url=success_url or settings.CHECKOUT_SUCCESS_URL,
        metadata={"payment_id": payment.id, "user_id": user.id},
    )

    payment_service.update_metadata(session, payment.id, {
        "provider": PaymentMethod.SQUARE.value,
        "square_payment_link_id": link.get("id"),
        "order_id": link.get("order_id"),
    })
    logger.info("✅ Square payment link %s created for payment %s", link.get("id"), payment.id)
    return payment, link["url"], link.get("id") or ""


# ------------------------
# WEBHOOK
# ------------------------
def compute_signature(signature_key: str, notification_url: str, body: bytes) -> str:
    digest = hmac.new(
        signature_key.encode("utf-8"),
        notification_url.encode("utf-8") + body,
        hashlib.sha256,
    ).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_signature(body: bytes, signature: Optional[str], notification_url: str) -> None:
    if not settings.SQUARE_WEBHOOK_SIGNATURE_KEY:
        raise ProviderUnavailable("Square webhook signature key is not configured")
    if not signature:
        raise InvalidSignature("Missing Square webhook signature")

    expected = compute_signature(settings.SQUARE_WEBHOOK_SIGNATURE_KEY, notification_url, body)
    if not hmac.compare_digest(expected, signature):
        logger.warning("❌ Invalid Square webhook signature for %s", notification_url)
        raise InvalidSignature("Invalid Square webhook signature")


def handle_payment_event(session: Session, client: SquareClient, payment_object: Dict[str, Any]) -> None:
    if payment_object.get("status") != "COMPLETED":
        return

    order_id = payment_object.get("order_id")
    if not order_id:
        return

    metadata = client.retrieve_order(order_id).get("metadata") or {}
    payment_id = metadata.get("payment_id")
    if not payment_id or not metadata.get("user_id"):
        logger.error("❌ Square webhook missing metadata for order %s", order_id)
        return

    payment = payment_service.update_status(
        session, payment_id, PaymentStatus.COMPLETED, transaction_id=payment_object.get("id")
    )
    if not payment:
        logger.error("❌ Square webhook: payment not found %s", payment_id)
        return

    subscription_service.grant_premium_for_payment(session, payment_id)


def handle_webhook(
    session: Session,
    client: SquareClient,
    body: bytes,
    signature: Optional[str],
    notification_url: str,
) -> str:
    verify_signature(body, signature, notification_url)

    try:
        event = json.loads(body)
    except ValueError:
        raise InvalidSignature("Invalid Square payload")

    event_type = event.get("type", "")
    logger.info("✅ Square webhook received: %s", event_type)

    if event_type in COMPLETING_EVENTS:
        payment_object = ((event.get("data") or {}).get("object") or {}).get("payment")
        if payment_object:
            handle_payment_event(session, client, payment_object)
    else:
        logger.info("ℹ️ Unhandled Square event type: %s", event_type)
    return event_type
