"""Stripe REST API service.

Covers the three ways the platform talks to Stripe:
- Connect OAuth (founders authorize read access to their account)
- Reading a connected account's subscriptions and invoices
- Billing for sponsorships (checkout sessions, signed webhooks)

All calls go through httpx with an explicit timeout. Connected-account reads
authenticate with the account's OAuth access token, platform operations with
the platform secret key.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import httpx

from config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

PAGE_SIZE = 100


class StripeAPIError(Exception):
    """A Stripe request failed (network, auth, rate limit or validation)."""

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class WebhookSignatureError(Exception):
    """The Stripe-Signature header does not match the payload."""


def _client(base_url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )


def _raise_for_stripe_error(response: httpx.Response) -> None:
    """Turn a non-2xx Stripe response into StripeAPIError."""
    if response.is_success:
        return
    message = f"Stripe request failed with status {response.status_code}"
    code = None
    try:
        body = response.json()
    except ValueError:
        body = {}
    error = body.get("error")
    if isinstance(error, dict):
        # REST API errors: {"error": {"message": ..., "code": ...}}
        message = error.get("message") or message
        code = error.get("code") or error.get("type")
    elif isinstance(error, str):
        # OAuth errors: {"error": "invalid_grant", "error_description": ...}
        message = body.get("error_description") or error
        code = error
    raise StripeAPIError(message, status_code=response.status_code, code=code)


# ============== Connect OAuth ==============

def build_connect_url(state: str) -> str:
    """Build the Stripe Connect authorization URL."""
    if not settings.stripe_client_id:
        raise ValueError("STRIPE_CLIENT_ID not configured")

    params = {
        "response_type": "code",
        "client_id": settings.stripe_client_id,
        "scope": settings.stripe_connect_scope,
        "redirect_uri": settings.stripe_redirect_uri,
        "state": state,
    }
    return f"{settings.stripe_connect_base}/oauth/authorize?{urlencode(params)}"


async def exchange_code_for_token(
    code: str,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """Exchange an authorization code for the connected account's tokens.

    Returns Stripe's token response: access_token, refresh_token, scope,
    stripe_user_id (the connected account ID).
    """
    if not settings.stripe_platform_secret_key:
        raise StripeAPIError("STRIPE_PLATFORM_SECRET_KEY not configured")

    try:
        async with _client(settings.stripe_connect_base, transport) as client:
            response = await client.post(
                "/oauth/token",
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_secret": settings.stripe_platform_secret_key,
                },
            )
    except httpx.HTTPError as e:
        raise StripeAPIError(f"Stripe OAuth request failed: {e}") from e

    _raise_for_stripe_error(response)
    return response.json()


# ============== Connected account reads ==============

async def list_all(
    access_token: str,
    path: str,
    params: Optional[dict[str, Any]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> list[dict]:
    """Fetch every object of a Stripe list endpoint, following pagination.

    Pages are requested until has_more is false. Totals computed from these
    objects must not be truncated, so there is no page cap.
    """
    query: dict[str, Any] = {**(params or {}), "limit": PAGE_SIZE}
    items: list[dict] = []

    try:
        async with _client(settings.stripe_api_base, transport) as client:
            while True:
                response = await client.get(
                    path,
                    params=query,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                _raise_for_stripe_error(response)

                page = response.json()
                data = page.get("data", [])
                items.extend(data)

                if not page.get("has_more") or not data:
                    break
                query["starting_after"] = data[-1]["id"]
    except httpx.HTTPError as e:
        raise StripeAPIError(f"Stripe request to {path} failed: {e}") from e

    return items


# ============== Billing ==============

async def create_checkout_session(
    price_id: str,
    success_url: str,
    cancel_url: str,
    metadata: dict[str, str],
    subscription_metadata: dict[str, str],
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> dict:
    """Create a hosted Checkout Session in subscription mode.

    Metadata is attached to both the session and the subscription it
    creates: later invoice/subscription webhooks only see the latter.
    """
    if not settings.stripe_platform_secret_key:
        raise StripeAPIError("STRIPE_PLATFORM_SECRET_KEY not configured")

    form: dict[str, str] = {
        "mode": "subscription",
        "line_items[0][price]": price_id,
        "line_items[0][quantity]": "1",
        "success_url": success_url,
        "cancel_url": cancel_url,
    }
    for key, value in metadata.items():
        form[f"metadata[{key}]"] = value
    for key, value in subscription_metadata.items():
        form[f"subscription_data[metadata][{key}]"] = value

    try:
        async with _client(settings.stripe_api_base, transport) as client:
            response = await client.post(
                "/v1/checkout/sessions",
                data=form,
                headers={"Authorization": f"Bearer {settings.stripe_platform_secret_key}"},
            )
    except httpx.HTTPError as e:
        raise StripeAPIError(f"Stripe checkout request failed: {e}") from e

    _raise_for_stripe_error(response)
    return response.json()


def construct_webhook_event(
    payload: bytes,
    sig_header: Optional[str],
    secret: str,
    tolerance: Optional[int] = None,
) -> dict:
    """Verify a webhook payload against its Stripe-Signature header.

    The header looks like ``t=1700000000,v1=<hex>,v1=<hex>``; the signed
    string is ``"{t}.{payload}"`` under HMAC-SHA256 with the endpoint secret.
    Returns the decoded event only when a v1 signature matches and the
    timestamp is within tolerance.
    """
    if not secret:
        raise WebhookSignatureError("Webhook secret not configured")
    if not sig_header:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    timestamp = None
    signatures: list[str] = []
    for part in sig_header.split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1":
            signatures.append(value)

    if not timestamp or not signatures:
        raise WebhookSignatureError("Malformed Stripe-Signature header")

    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    expected = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("No signature matches the payload")

    if tolerance is None:
        tolerance = settings.stripe_webhook_tolerance_seconds
    try:
        age = time.time() - int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Malformed signature timestamp")
    if tolerance and age > tolerance:
        raise WebhookSignatureError("Signature timestamp outside tolerance")

    try:
        return json.loads(payload)
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid JSON payload: {e}") from e


def sign_webhook_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header for a payload (used by tests and local replay)."""
    timestamp = timestamp if timestamp is not None else int(time.time())
    signed_payload = f"{timestamp}.".encode("utf-8") + payload
    signature = hmac.new(secret.encode("utf-8"), signed_payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"
