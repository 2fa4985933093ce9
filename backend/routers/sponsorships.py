"""Sponsorship routes - tier listing and Stripe Checkout creation."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from middleware.rate_limit import CHECKOUT_LIMIT, limiter
from models.sponsorship import (
    SPONSORSHIP_MONTHLY_PRICES,
    Sponsorship,
    SponsorshipStatus,
    SponsorshipType,
)
from services import stripe_service
from services.leaderboard import get_startup_by_slug
from services.sponsorships import get_price_id

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/sponsorships", tags=["sponsorships"])
settings = get_settings()


class CheckoutRequest(BaseModel):
    startup_slug: str = Field(
        min_length=1,
        validation_alias=AliasChoices("startupSlug", "startup_slug"),
    )
    type: SponsorshipType


class CheckoutResponse(BaseModel):
    url: str
    session_id: str = Field(serialization_alias="sessionId")


class TierSchema(BaseModel):
    type: str
    monthly_price: int
    currency: str = "EUR"
    available: bool


@router.get("/tiers", response_model=list[TierSchema])
async def list_tiers():
    """Sponsorship tiers with their monthly price."""
    return [
        TierSchema(
            type=tier.value,
            monthly_price=price,
            available=bool(get_price_id(tier)),
        )
        for tier, price in SPONSORSHIP_MONTHLY_PRICES.items()
    ]


@router.post("/checkout", response_model=CheckoutResponse)
@limiter.limit(CHECKOUT_LIMIT)
async def create_checkout(
    request: Request,
    payload: CheckoutRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Start a sponsorship purchase.

    Creates a subscription-mode Checkout Session and a pending sponsorship
    row. If the row cannot be written the checkout still proceeds; the
    webhook activates the newest pending row or logs the miss.
    """
    price_id = get_price_id(payload.type)
    if not price_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Price ID not configured for sponsorship type: {payload.type.value}",
        )

    startup = await get_startup_by_slug(db, payload.startup_slug)
    if startup is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Startup not found. Please check the slug and try again.",
        )

    base_url = settings.app_base_url.rstrip("/")
    try:
        session = await stripe_service.create_checkout_session(
            price_id=price_id,
            success_url=f"{base_url}/startup/{startup.slug}?sponsorship=success",
            cancel_url=f"{base_url}/startup/{startup.slug}?sponsorship=cancelled",
            metadata={
                "startup_id": startup.id,
                "startup_slug": startup.slug,
                "startup_name": startup.name,
                "type": payload.type.value,
            },
            subscription_metadata={
                "startup_id": startup.id,
                "startup_slug": startup.slug,
                "startup_name": startup.name,
                "type": payload.type.value,
            },
        )
    except stripe_service.StripeAPIError as e:
        logger.error(f"Error creating checkout session for {startup.slug}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to create checkout session",
        )

    try:
        db.add(Sponsorship(
            startup_id=startup.id,
            type=payload.type,
            category=startup.category if payload.type == SponsorshipType.CATEGORY_HERO else None,
            status=SponsorshipStatus.PENDING,
            stripe_price_id=price_id,
            stripe_checkout_session_id=session["id"],
        ))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error creating sponsorship record (checkout continues): {e}")

    return CheckoutResponse(url=session["url"], session_id=session["id"])
