"""Payment provider adapters and their registry.

Every provider is normalized into ProviderMetrics (currency, MRR, total
revenue, last-30-day revenue, all in whole currency units) so the sync
engine and leaderboard never deal with provider-specific shapes.

To add a provider: subclass PaymentProviderAdapter, implement
fetch_metrics(), and register an instance in ``registry`` below.
"""

import logging
import math
import time
from typing import Optional

import httpx
from pydantic import BaseModel

from services import stripe_service

logger = logging.getLogger(__name__)

# Providers the leaderboard knows about; only some have adapters.
KNOWN_PROVIDERS = ("stripe", "paddle", "braintree", "paypal", "mollie")

DEFAULT_CURRENCY = "eur"
THIRTY_DAYS_SECONDS = 30 * 24 * 60 * 60
WEEKS_PER_MONTH = 4.33
DAYS_PER_MONTH = 30


class ProviderNotRegisteredError(LookupError):
    """No adapter is bound to the requested provider name."""


class ProviderNotImplementedError(NotImplementedError):
    """The provider is registered as a placeholder without a working adapter."""


class ProviderConnectionConfig(BaseModel):
    """What an adapter needs to read one connected account."""
    provider_connection_id: str
    provider_account_id: str
    access_token: str
    refresh_token: Optional[str] = None


class ProviderMetrics(BaseModel):
    """Standardized metrics returned by every adapter."""
    currency: str  # ISO code, uppercase
    mrr: int
    total_revenue: int
    last_30d_revenue: int
    raw: Optional[dict] = None  # Diagnostics only, never persisted


class PaymentProviderAdapter:
    """Base class for provider adapters."""

    name: str = ""

    async def fetch_metrics(self, config: ProviderConnectionConfig) -> ProviderMetrics:
        raise NotImplementedError


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def monthly_amount(unit_amount: float, interval: str, interval_count: int = 1) -> float:
    """Normalize a recurring price to its monthly equivalent.

    Units are preserved (minor units in, minor units out). Unknown intervals
    contribute nothing.
    """
    per_interval = unit_amount / (interval_count or 1)
    if interval == "month":
        return per_interval
    if interval == "year":
        return per_interval / 12
    if interval == "week":
        return per_interval * WEEKS_PER_MONTH
    if interval == "day":
        return per_interval * DAYS_PER_MONTH
    return 0.0


def calculate_mrr_minor_units(subscriptions: list[dict]) -> float:
    """Sum the monthly-normalized amount of every recurring subscription item."""
    total = 0.0
    for subscription in subscriptions:
        for item in subscription.get("items", {}).get("data", []):
            price = item.get("price") or {}
            recurring = price.get("recurring")
            if not recurring:
                continue
            total += monthly_amount(
                price.get("unit_amount") or 0,
                recurring.get("interval"),
                recurring.get("interval_count") or 1,
            )
    return total


class StripeAdapter(PaymentProviderAdapter):
    """Reads MRR and revenue from a Stripe Connect account.

    MRR comes from active subscriptions, revenue from paid invoices. Both
    lists are paginated to exhaustion with the connected account's token.
    """

    name = "stripe"

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._transport = transport

    async def fetch_metrics(self, config: ProviderConnectionConfig) -> ProviderMetrics:
        subscriptions = await stripe_service.list_all(
            config.access_token,
            "/v1/subscriptions",
            {"status": "active"},
            transport=self._transport,
        )
        mrr = calculate_mrr_minor_units(subscriptions)
        currency = (subscriptions[0].get("currency") if subscriptions else None) or DEFAULT_CURRENCY

        invoices = await stripe_service.list_all(
            config.access_token,
            "/v1/invoices",
            {"status": "paid"},
            transport=self._transport,
        )
        thirty_days_ago = int(time.time()) - THIRTY_DAYS_SECONDS
        total_revenue = 0.0
        last_30d_revenue = 0.0
        for invoice in invoices:
            amount_paid = invoice.get("amount_paid")
            if not amount_paid:
                continue
            amount = amount_paid / 100
            total_revenue += amount
            if invoice.get("created", 0) >= thirty_days_ago:
                last_30d_revenue += amount

        logger.info(
            f"Stripe metrics for {config.provider_account_id}: "
            f"{len(subscriptions)} active subscriptions, {len(invoices)} paid invoices"
        )

        return ProviderMetrics(
            currency=currency.upper(),
            mrr=round_half_up(mrr / 100),
            total_revenue=round_half_up(total_revenue),
            last_30d_revenue=round_half_up(last_30d_revenue),
            raw={
                "subscription_count": len(subscriptions),
                "invoice_count": len(invoices),
            },
        )


class PlaceholderAdapter(PaymentProviderAdapter):
    """Stand-in for a provider that is known but has no adapter yet."""

    def __init__(self, name: str):
        self.name = name

    async def fetch_metrics(self, config: ProviderConnectionConfig) -> ProviderMetrics:
        raise ProviderNotImplementedError(f"Provider adapter not yet implemented: {self.name}")


class ProviderRegistry:
    """Maps provider names to adapter instances."""

    def __init__(self) -> None:
        self._adapters: dict[str, PaymentProviderAdapter] = {}

    def register(self, adapter: PaymentProviderAdapter) -> None:
        self._adapters[adapter.name] = adapter

    def unregister(self, name: str) -> None:
        self._adapters.pop(name, None)

    def get(self, name: str) -> PaymentProviderAdapter:
        adapter = self._adapters.get(name)
        if adapter is None:
            available = ", ".join(self.list_registered()) or "none"
            raise ProviderNotRegisteredError(
                f"No adapter registered for provider: {name}. Available: {available}"
            )
        return adapter

    def list_registered(self) -> list[str]:
        return list(self._adapters)


registry = ProviderRegistry()
registry.register(StripeAdapter())


def get_provider_adapter(name: str) -> PaymentProviderAdapter:
    """Get the adapter for a provider, raising ProviderNotRegisteredError if unbound."""
    return registry.get(name)


def get_registered_providers() -> list[str]:
    return registry.list_registered()
