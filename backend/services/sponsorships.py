"""Sponsorship lifecycle - pending -> active -> cancelled.

Transitions are driven by Stripe webhooks (and admin deactivation). Every
handler is a lookup followed by a conditional update, so redelivered or
out-of-order events leave the row in the same state.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from models.sponsorship import Sponsorship, SponsorshipStatus, SponsorshipType

logger = logging.getLogger(__name__)
settings = get_settings()


def get_price_id(sponsorship_type: SponsorshipType) -> str:
    """Stripe price configured for a tier ("" when unconfigured)."""
    price_ids = {
        SponsorshipType.FEATURED_LISTING: settings.featured_listing_price_id,
        SponsorshipType.CATEGORY_HERO: settings.category_hero_price_id,
        SponsorshipType.HOMEPAGE_SPONSOR: settings.homepage_sponsor_price_id,
    }
    return price_ids.get(sponsorship_type, "")


def _today() -> date:
    return datetime.now(timezone.utc).date()


async def find_by_subscription(db: AsyncSession, subscription_id: str) -> Optional[Sponsorship]:
    result = await db.execute(
        select(Sponsorship)
        .where(Sponsorship.stripe_subscription_id == subscription_id)
        .order_by(Sponsorship.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _find_pending_fallback(
    db: AsyncSession, startup_id: str, sponsorship_type: SponsorshipType
) -> Optional[Sponsorship]:
    """Most recent pending sponsorship for (startup, type)."""
    result = await db.execute(
        select(Sponsorship)
        .where(
            Sponsorship.startup_id == startup_id,
            Sponsorship.type == sponsorship_type,
            Sponsorship.status == SponsorshipStatus.PENDING,
        )
        .order_by(Sponsorship.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def activate_from_checkout(db: AsyncSession, session: dict) -> Optional[Sponsorship]:
    """Handle checkout.session.completed.

    Looks the sponsorship up by checkout session ID and falls back to the
    newest pending row for the same startup and tier, which covers a pending
    insert that failed when checkout was created.
    """
    metadata = session.get("metadata") or {}
    startup_id = metadata.get("startup_id")
    type_value = metadata.get("type")
    customer_id = session.get("customer")
    subscription_id = session.get("subscription")

    if not startup_id or not type_value or not customer_id or not subscription_id:
        logger.error(
            f"Missing required metadata in checkout session {session.get('id')}: "
            f"startup_id={startup_id}, type={type_value}, "
            f"customer={customer_id}, subscription={subscription_id}"
        )
        return None

    try:
        sponsorship_type = SponsorshipType(type_value)
    except ValueError:
        logger.error(f"Unknown sponsorship type in checkout session {session.get('id')}: {type_value}")
        return None

    result = await db.execute(
        select(Sponsorship).where(Sponsorship.stripe_checkout_session_id == session.get("id"))
    )
    sponsorship = result.scalars().first()

    if sponsorship is None:
        logger.warning(
            f"Sponsorship not found for checkout session {session.get('id')}, "
            f"trying pending {sponsorship_type.value} for startup {startup_id}"
        )
        sponsorship = await _find_pending_fallback(db, startup_id, sponsorship_type)
        if sponsorship is None:
            logger.error(f"No pending sponsorship to activate for startup {startup_id}")
            return None

    # Only pending rows are activated here. A redelivered checkout event for a
    # subscription that has since ended must not revive it.
    if (
        sponsorship.status != SponsorshipStatus.PENDING
        and sponsorship.stripe_subscription_id == subscription_id
    ):
        logger.info(
            f"Sponsorship {sponsorship.id} already {sponsorship.status.value} "
            f"for subscription {subscription_id}, nothing to do"
        )
        return sponsorship

    sponsorship.status = SponsorshipStatus.ACTIVE
    sponsorship.stripe_customer_id = customer_id
    sponsorship.stripe_subscription_id = subscription_id
    sponsorship.start_date = sponsorship.start_date or _today()
    sponsorship.end_date = None
    sponsorship.updated_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info(f"Sponsorship activated: {sponsorship.id} for startup {startup_id}")
    return sponsorship


def _invoice_subscription_id(invoice: dict) -> Optional[str]:
    """Subscription of an invoice, across Stripe API versions."""
    subscription = invoice.get("subscription")
    if subscription:
        return subscription if isinstance(subscription, str) else subscription.get("id")
    parent = invoice.get("parent") or {}
    details = parent.get("subscription_details") or {}
    return details.get("subscription")


async def mark_invoice_paid(db: AsyncSession, invoice: dict) -> Optional[Sponsorship]:
    """Handle invoice.paid: make sure a renewed sponsorship stays active."""
    subscription_id = _invoice_subscription_id(invoice)
    if not subscription_id:
        return None

    sponsorship = await find_by_subscription(db, subscription_id)
    if sponsorship is None:
        logger.info(f"No sponsorship for paid invoice subscription {subscription_id}")
        return None

    if sponsorship.status != SponsorshipStatus.ACTIVE:
        sponsorship.status = SponsorshipStatus.ACTIVE
        sponsorship.updated_at = datetime.now(timezone.utc)
        await db.commit()
        logger.info(f"Sponsorship re-activated by invoice payment: {sponsorship.id}")
    return sponsorship


def _cancel(sponsorship: Sponsorship) -> bool:
    """Mark cancelled. Returns False when it already was."""
    if sponsorship.status == SponsorshipStatus.CANCELLED:
        return False
    sponsorship.status = SponsorshipStatus.CANCELLED
    sponsorship.end_date = _today()
    sponsorship.updated_at = datetime.now(timezone.utc)
    return True


async def cancel_by_subscription(db: AsyncSession, subscription_id: str) -> Optional[Sponsorship]:
    """Handle customer.subscription.deleted."""
    sponsorship = await find_by_subscription(db, subscription_id)
    if sponsorship is None:
        logger.error(f"Sponsorship not found for subscription: {subscription_id}")
        return None

    if _cancel(sponsorship):
        await db.commit()
        logger.info(f"Sponsorship cancelled: {sponsorship.id}")
    return sponsorship


async def cancel_sponsorship(db: AsyncSession, sponsorship_id: str) -> Optional[Sponsorship]:
    """Admin deactivation by sponsorship ID."""
    sponsorship = await db.get(Sponsorship, sponsorship_id)
    if sponsorship is None:
        return None

    if _cancel(sponsorship):
        await db.commit()
        logger.info(f"Sponsorship deactivated by admin: {sponsorship.id}")
    return sponsorship
