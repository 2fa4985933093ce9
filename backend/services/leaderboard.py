"""Leaderboard queries - startups, their metrics, and sponsorship-aware ranking.

Related rows are loaded with separate queries and joined in memory through
keyed lookups (startup_id -> row). Each startup has zero or one current
metrics row and, by application convention, zero or one active sponsorship.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.metrics import StartupMetricsCurrent, StartupMetricsHistory
from models.sponsorship import Sponsorship, SponsorshipStatus
from models.startup import Startup, slugify

logger = logging.getLogger(__name__)

SortField = Literal["mrr", "last_30d_revenue", "total_revenue"]


class DuplicateStartupError(ValueError):
    """A startup with the same slug already exists."""


class LeaderboardFilters(BaseModel):
    country: list[str] = []
    category: list[str] = []
    provider: list[str] = []
    min_mrr: Optional[float] = None
    max_mrr: Optional[float] = None
    sort_by: SortField = "mrr"


@dataclass
class RankedStartup:
    startup: Startup
    metrics: Optional[StartupMetricsCurrent]
    sponsorship: Optional[Sponsorship]

    @property
    def is_sponsored(self) -> bool:
        return self.sponsorship is not None

    def metric(self, field: str) -> float:
        """Value of a metric, treating "no metrics yet" as zero."""
        if self.metrics is None:
            return 0
        return getattr(self.metrics, field) or 0


def is_uuid(value: str) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


async def active_sponsorships_by_startup(
    db: AsyncSession, startup_ids: list[str]
) -> dict[str, Sponsorship]:
    """Map startup_id -> its active sponsorship (newest wins if several)."""
    if not startup_ids:
        return {}
    result = await db.execute(
        select(Sponsorship)
        .where(
            Sponsorship.startup_id.in_(startup_ids),
            Sponsorship.status == SponsorshipStatus.ACTIVE,
        )
        .order_by(Sponsorship.created_at.desc())
    )
    lookup: dict[str, Sponsorship] = {}
    for sponsorship in result.scalars().all():
        lookup.setdefault(sponsorship.startup_id, sponsorship)
    return lookup


async def list_ranked(
    db: AsyncSession, filters: Optional[LeaderboardFilters] = None
) -> list[RankedStartup]:
    """Startups in leaderboard order.

    Active sponsors form the first tier and everyone else the second; inside
    each tier startups are sorted descending by the chosen metric. Sorting is
    stable over a fixed base order, so ties come back in the same order on
    every call.
    """
    filters = filters or LeaderboardFilters()

    query = (
        select(Startup, StartupMetricsCurrent)
        .outerjoin(StartupMetricsCurrent, StartupMetricsCurrent.startup_id == Startup.id)
        .order_by(Startup.created_at, Startup.id)
    )
    if filters.country:
        query = query.where(Startup.country.in_([c.upper() for c in filters.country]))
    if filters.category:
        query = query.where(Startup.category.in_(filters.category))

    result = await db.execute(query)
    rows = result.all()

    sponsorships = await active_sponsorships_by_startup(db, [s.id for s, _ in rows])
    entries = [
        RankedStartup(startup=s, metrics=m, sponsorship=sponsorships.get(s.id))
        for s, m in rows
    ]

    if filters.provider:
        entries = [
            e for e in entries
            if e.metrics is not None and e.metrics.provider in filters.provider
        ]
    if filters.min_mrr is not None:
        entries = [e for e in entries if e.metric("mrr") >= filters.min_mrr]
    if filters.max_mrr is not None:
        entries = [e for e in entries if e.metric("mrr") <= filters.max_mrr]

    def sort_key(entry: RankedStartup) -> float:
        return entry.metric(filters.sort_by)

    sponsored = sorted((e for e in entries if e.is_sponsored), key=sort_key, reverse=True)
    regular = sorted((e for e in entries if not e.is_sponsored), key=sort_key, reverse=True)
    return sponsored + regular


async def get_aggregates(db: AsyncSession) -> dict:
    """Total MRR across all current snapshots and the total startup count."""
    total_mrr = await db.execute(select(func.coalesce(func.sum(StartupMetricsCurrent.mrr), 0)))
    startup_count = await db.execute(select(func.count(Startup.id)))
    return {
        "total_mrr": int(round(total_mrr.scalar() or 0)),
        "startup_count": startup_count.scalar() or 0,
    }


async def get_startup_by_id(db: AsyncSession, startup_id: str) -> Optional[Startup]:
    if not startup_id or not is_uuid(startup_id):
        return None
    return await db.get(Startup, str(UUID(startup_id)))


async def get_startup_by_slug(db: AsyncSession, slug: str) -> Optional[Startup]:
    result = await db.execute(select(Startup).where(Startup.slug == slug))
    return result.scalar_one_or_none()


async def get_startup_detail(db: AsyncSession, slug: str) -> Optional[RankedStartup]:
    """A single startup with its current metrics and active sponsorship."""
    startup = await get_startup_by_slug(db, slug)
    if startup is None:
        return None

    metrics_result = await db.execute(
        select(StartupMetricsCurrent).where(StartupMetricsCurrent.startup_id == startup.id)
    )
    sponsorships = await active_sponsorships_by_startup(db, [startup.id])
    return RankedStartup(
        startup=startup,
        metrics=metrics_result.scalar_one_or_none(),
        sponsorship=sponsorships.get(startup.id),
    )


async def get_metrics_history(
    db: AsyncSession, startup_id: str, days: Optional[int] = None
) -> list[StartupMetricsHistory]:
    """Daily history rows, oldest first."""
    query = (
        select(StartupMetricsHistory)
        .where(StartupMetricsHistory.startup_id == startup_id)
        .order_by(StartupMetricsHistory.snapshot_date)
    )
    if days:
        since: date = datetime.now(timezone.utc).date() - timedelta(days=days)
        query = query.where(StartupMetricsHistory.snapshot_date >= since)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_startup(
    db: AsyncSession,
    name: str,
    website_url: str,
    country: str,
    category: str,
    description: Optional[str] = None,
    logo_url: Optional[str] = None,
) -> Startup:
    """Insert a submitted startup with a slug derived from its name."""
    slug = slugify(name)
    if not slug:
        raise ValueError("Startup name must contain letters or digits")

    if await get_startup_by_slug(db, slug) is not None:
        raise DuplicateStartupError(f"A startup with slug '{slug}' already exists")

    startup = Startup(
        name=name.strip(),
        slug=slug,
        website_url=website_url,
        country=country.strip().upper(),
        category=category.strip(),
        description=description,
        logo_url=logo_url,
    )
    db.add(startup)
    await db.commit()
    await db.refresh(startup)

    logger.info(f"Startup created: {startup.slug}")
    return startup
