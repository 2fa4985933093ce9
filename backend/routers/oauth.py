"""OAuth router - founders connect their payment provider accounts.

Connect redirects to Stripe with a signed state naming the startup; the
callback exchanges the code, records the connection and token, runs a first
metrics sync and sends the founder to their startup page. Founder-facing
failures become redirects with an ``error`` query parameter, never raw
provider messages.
"""

import logging
from typing import Annotated, Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from services import stripe_service
from services.auth_service import AuthService
from services.connections import upsert_connection
from services.leaderboard import get_startup_by_id
from services.metrics_sync import get_sync_target, sync_one

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/providers", tags=["providers"])
settings = get_settings()

STRIPE = "stripe"


def _redirect(path: str, **params: str) -> RedirectResponse:
    url = f"{settings.app_base_url.rstrip('/')}{path}"
    if params:
        url = f"{url}?{urlencode(params)}"
    return RedirectResponse(url, status_code=status.HTTP_302_FOUND)


def _error_redirect(error: str) -> RedirectResponse:
    return _redirect("/submit", error=error)


@router.get("/stripe/connect")
async def stripe_connect(
    db: Annotated[AsyncSession, Depends(get_db)],
    startup: Optional[str] = None,
) -> RedirectResponse:
    """Redirect a founder to Stripe Connect to authorize read access."""
    if not settings.stripe_client_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Stripe Connect not configured. Set STRIPE_CLIENT_ID.",
        )

    found = await get_startup_by_id(db, startup) if startup else None
    if found is None:
        logger.warning(f"Stripe connect requested for unknown startup: {startup}")
        return _error_redirect("startup_not_found")

    state = AuthService.create_oauth_state(found.id)
    return RedirectResponse(
        stripe_service.build_connect_url(state),
        status_code=status.HTTP_302_FOUND,
    )


@router.get("/stripe/callback")
async def stripe_callback(
    db: Annotated[AsyncSession, Depends(get_db)],
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    error_description: Optional[str] = None,
) -> RedirectResponse:
    """Stripe Connect OAuth callback handler."""
    if error:
        logger.warning(f"Stripe authorization declined: {error} ({error_description})")
        return _error_redirect("stripe_authorization_failed")

    if not code or not state:
        logger.error("Stripe callback missing code or state")
        return _error_redirect("missing_code_or_state")

    startup_id = AuthService.verify_oauth_state(state)
    if startup_id is None:
        logger.warning("Stripe callback with invalid or expired state")
        return _error_redirect("invalid_state")

    try:
        tokens = await stripe_service.exchange_code_for_token(code)
    except stripe_service.StripeAPIError as e:
        logger.error(f"Stripe token exchange failed: {e}")
        return _error_redirect("token_exchange_failed")

    account_id = tokens.get("stripe_user_id")
    if not account_id or not tokens.get("access_token"):
        logger.error("Stripe token response missing stripe_user_id or access_token")
        return _error_redirect("token_exchange_failed")

    startup = await get_startup_by_id(db, startup_id)
    if startup is None:
        logger.error(f"Startup not found for Stripe connection: {startup_id}")
        return _error_redirect("startup_not_found")

    slug = startup.slug
    try:
        connection, _ = await upsert_connection(
            db,
            startup_id=startup.id,
            provider=STRIPE,
            provider_account_id=account_id,
            tokens=tokens,
            scope=settings.stripe_connect_scope,
        )
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error saving Stripe connection for {slug}: {e}")
        return _error_redirect("connection_save_failed")

    # First sync right away; the periodic sync retries if this fails
    target = await get_sync_target(db, connection.id)
    if target is not None:
        result = await sync_one(db, target)
        if result.status != "success":
            logger.warning(f"Initial metrics sync failed for {slug}: {result.error}")

    return _redirect(f"/startup/{slug}", connected="1")
