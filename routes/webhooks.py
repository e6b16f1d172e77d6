from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from core.database import get_session
from services import square_service, stripe_service
from services.square_service import SquareClient, get_square_client

router = APIRouter(tags=["Webhooks"])


@router.post("/stripe")
async def stripe_webhook(request: Request, session: Session = Depends(get_session)):
    """Stripe events; the raw body is needed for signature verification."""
    payload = await request.body()
    await run_in_threadpool(
        stripe_service.handle_webhook, session, payload, request.headers.get("stripe-signature")
    )
    return {"received": True}


@router.post("/square")
async def square_webhook(
    request: Request,
    session: Session = Depends(get_session),
    square_client: SquareClient = Depends(get_square_client),
):
    payload = await request.body()
    await run_in_threadpool(
        square_service.handle_webhook,
        session,
        square_client,
        payload,
        request.headers.get("x-square-hmacsha256-signature"),
        str(request.url),
    )
    return {"received": True}
