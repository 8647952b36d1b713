"""
Checkout session and Stripe webhook endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from app.deps import get_db_session
from core.services.checkout import create_checkout_session
from core.services.payment_webhook import handle_webhook


router = APIRouter()


@router.post("/api/checkout")
def start_checkout(
    request: Request,
    payload: Optional[dict] = Body(default=None),
    db=Depends(get_db_session),
):
    result = create_checkout_session(db, payload or {}, origin=request.headers.get("origin"))
    return {"url": result["url"]}


@router.post("/api/stripe/webhook")
async def stripe_webhook(request: Request, db=Depends(get_db_session)):
    """Signed payment notifications; replies are bare text."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")
    outcome = await run_in_threadpool(handle_webhook, db, payload, signature)
    return PlainTextResponse(outcome.message, status_code=outcome.status_code)
