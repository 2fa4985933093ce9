"""Webhook router - receives Stripe billing events for sponsorships.

Configure in the Stripe Dashboard with these events:
- checkout.session.completed
- invoice.paid
- customer.subscription.deleted
- invoice.payment_failed (logged only)
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from services import stripe_service
from services.sponsorships import activate_from_checkout, cancel_by_subscription, mark_invoice_paid

router = APIRouter(prefix="/api/stripe", tags=["webhook"])
settings = get_settings()
logger = logging.getLogger(__name__)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    stripe_signature: Annotated[Optional[str], Header()] = None,
):
    """Verify and dispatch a Stripe event.

    Unverifiable payloads are rejected before anything is read from them.
    Handlers are idempotent, so redeliveries are harmless.
    """
    payload = await request.body()
    try:
        event = stripe_service.construct_webhook_event(
            payload, stripe_signature, settings.stripe_webhook_secret
        )
    except stripe_service.WebhookSignatureError as e:
        logger.error(f"Webhook signature verification failed: {e}")
        raise HTTPException(status_code=400, detail="Signature verification failed")

    event_type = event.get("type")
    obj = (event.get("data") or {}).get("object") or {}

    try:
        if event_type == "checkout.session.completed":
            await activate_from_checkout(db, obj)
        elif event_type == "invoice.paid":
            await mark_invoice_paid(db, obj)
        elif event_type == "customer.subscription.deleted":
            if obj.get("id"):
                await cancel_by_subscription(db, obj["id"])
        elif event_type == "invoice.payment_failed":
            logger.warning(f"Payment failed for invoice {obj.get('id')}")
        else:
            logger.info(f"Unhandled event type: {event_type}")
    except Exception as e:
        logger.exception(f"Error processing webhook {event.get('id')}: {e}")
        raise HTTPException(status_code=500, detail="Webhook processing failed")

    return {"received": True}
