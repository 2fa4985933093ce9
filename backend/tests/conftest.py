"""Shared fixtures: in-memory database, API client, seeding helpers."""

import os

# Settings are cached on first import, so the environment goes in first
os.environ.update({
    "DATABASE_URL": "sqlite+aiosqlite://",
    "APP_BASE_URL": "http://localhost:3000",
    "JWT_SECRET": "test-jwt-secret",
    "STRIPE_CLIENT_ID": "ca_test",
    "STRIPE_PLATFORM_SECRET_KEY": "sk_test_platform",
    "STRIPE_WEBHOOK_SECRET": "whsec_test",
    "FEATURED_LISTING_PRICE_ID": "price_featured",
    "CATEGORY_HERO_PRICE_ID": "price_hero",
    "HOMEPAGE_SPONSOR_PRICE_ID": "",
    "CRON_SECRET": "",
    "SYNC_INTERVAL_HOURS": "0",
})

from datetime import date, datetime, timezone
from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from middleware.rate_limit import limiter
from models import (
    ConnectionStatus,
    ProviderConnection,
    ProviderToken,
    Sponsorship,
    SponsorshipStatus,
    SponsorshipType,
    Startup,
    StartupMetricsCurrent,
    slugify,
)
from services.providers import (
    PaymentProviderAdapter,
    ProviderConnectionConfig,
    ProviderMetrics,
    StripeAdapter,
    registry,
)
from services.stripe_service import StripeAPIError

limiter.enabled = False


@pytest.fixture()
async def engine():
    """SQLite in-memory database shared by every session through StaticPool."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory):
    """API client with get_db pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


class FakeStripeAdapter(PaymentProviderAdapter):
    """Stands in for Stripe: canned metrics per account, optional failures."""

    name = "stripe"

    def __init__(self):
        self.metrics: dict[str, ProviderMetrics] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def fetch_metrics(self, config: ProviderConnectionConfig) -> ProviderMetrics:
        self.calls.append(config.provider_account_id)
        if config.provider_account_id in self.failing:
            raise StripeAPIError("Invalid API Key provided", status_code=401)
        return self.metrics.get(
            config.provider_account_id,
            ProviderMetrics(currency="EUR", mrr=500, total_revenue=12000, last_30d_revenue=1500),
        )


@pytest.fixture()
def fake_stripe():
    """Swap the registered Stripe adapter for a fake for one test."""
    adapter = FakeStripeAdapter()
    registry.register(adapter)
    yield adapter
    registry.register(StripeAdapter())


@pytest.fixture()
def make_startup(session_factory):
    """Insert a startup with optional metrics and sponsorship."""

    async def _make(
        name: str,
        country: str = "FI",
        category: str = "SaaS",
        mrr: Optional[int] = None,
        total_revenue: int = 0,
        last_30d_revenue: int = 0,
        provider: str = "stripe",
        sponsorship: Optional[SponsorshipStatus] = None,
        sponsorship_type: SponsorshipType = SponsorshipType.FEATURED_LISTING,
    ) -> Startup:
        async with session_factory() as session:
            startup = Startup(
                name=name,
                slug=slugify(name),
                website_url=f"https://{slugify(name)}.example",
                country=country,
                category=category,
            )
            session.add(startup)
            await session.flush()

            if mrr is not None:
                session.add(StartupMetricsCurrent(
                    startup_id=startup.id,
                    currency="EUR",
                    mrr=mrr,
                    total_revenue=total_revenue,
                    last_30d_revenue=last_30d_revenue,
                    provider=provider,
                    provider_last_synced_at=datetime.now(timezone.utc),
                ))
            if sponsorship is not None:
                session.add(Sponsorship(
                    startup_id=startup.id,
                    type=sponsorship_type,
                    status=sponsorship,
                    start_date=date.today() if sponsorship == SponsorshipStatus.ACTIVE else None,
                ))
            await session.commit()
            return startup

    return _make


@pytest.fixture()
def make_connection(session_factory):
    """Insert a connected provider account with a token."""

    async def _make(
        startup: Startup,
        account_id: str,
        provider: str = "stripe",
        status: ConnectionStatus = ConnectionStatus.CONNECTED,
    ) -> ProviderConnection:
        async with session_factory() as session:
            connection = ProviderConnection(
                startup_id=startup.id,
                provider=provider,
                provider_account_id=account_id,
                status=status,
            )
            session.add(connection)
            await session.flush()
            session.add(ProviderToken(
                provider_connection_id=connection.id,
                access_token=f"sk_access_{account_id}",
                refresh_token=f"rt_{account_id}",
            ))
            await session.commit()
            return connection

    return _make
