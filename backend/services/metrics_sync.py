"""Metrics sync engine - pulls provider metrics into the leaderboard tables.

For each connected account: resolve the adapter, fetch metrics, overwrite the
startup's current snapshot, append today's history row if missing, and stamp
the connection's last_synced_at. Each connection succeeds or fails on its
own; a batch never aborts because one account is broken. There is no retry
here: the next scheduled run starts over from scratch.
"""

import logging
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import async_session
from models.metrics import StartupMetricsCurrent, StartupMetricsHistory
from models.provider_connection import ConnectionStatus, ProviderConnection, ProviderToken
from services.providers import ProviderConnectionConfig, ProviderMetrics, get_provider_adapter

logger = logging.getLogger(__name__)


class SyncTarget(BaseModel):
    """A connection plus its credentials, detached from the session."""
    connection_id: str
    startup_id: str
    provider: str
    provider_account_id: str
    access_token: str
    refresh_token: Optional[str] = None

    def to_config(self) -> ProviderConnectionConfig:
        return ProviderConnectionConfig(
            provider_connection_id=self.connection_id,
            provider_account_id=self.provider_account_id,
            access_token=self.access_token,
            refresh_token=self.refresh_token,
        )


class SyncResult(BaseModel):
    startup_id: str
    provider: str
    status: str  # "success" or "error"
    error: Optional[str] = None
    metrics: Optional[ProviderMetrics] = None


def _target_query():
    return (
        select(ProviderConnection, ProviderToken)
        .join(ProviderToken, ProviderToken.provider_connection_id == ProviderConnection.id)
        .where(ProviderConnection.status == ConnectionStatus.CONNECTED)
    )


def _to_target(connection: ProviderConnection, token: ProviderToken) -> SyncTarget:
    return SyncTarget(
        connection_id=connection.id,
        startup_id=connection.startup_id,
        provider=connection.provider,
        provider_account_id=connection.provider_account_id,
        access_token=token.access_token,
        refresh_token=token.refresh_token,
    )


async def get_connections_to_sync(db: AsyncSession) -> list[SyncTarget]:
    """All connected connections that have a stored token."""
    result = await db.execute(_target_query())
    return [_to_target(conn, token) for conn, token in result.all()]


async def get_sync_target(db: AsyncSession, connection_id: str) -> Optional[SyncTarget]:
    result = await db.execute(_target_query().where(ProviderConnection.id == connection_id))
    row = result.first()
    return _to_target(*row) if row else None


async def get_sync_target_for_startup(db: AsyncSession, startup_id: str) -> Optional[SyncTarget]:
    """The startup's connected connection, if any (first by connection date)."""
    result = await db.execute(
        _target_query()
        .where(ProviderConnection.startup_id == startup_id)
        .order_by(ProviderConnection.connected_at)
    )
    row = result.first()
    return _to_target(*row) if row else None


async def store_metrics(
    db: AsyncSession,
    target: SyncTarget,
    metrics: ProviderMetrics,
    today: Optional[date] = None,
) -> None:
    """Persist freshly fetched metrics for one connection and commit.

    The snapshot is a last-writer-wins overwrite. The history row is only
    inserted when none exists for (startup, today); a concurrent insert that
    wins the race is logged and leaves the snapshot write intact.
    """
    now = datetime.now(timezone.utc)
    today = today or now.date()

    result = await db.execute(
        select(StartupMetricsCurrent).where(
            StartupMetricsCurrent.startup_id == target.startup_id
        )
    )
    current = result.scalar_one_or_none()

    if current:
        current.currency = metrics.currency
        current.mrr = metrics.mrr
        current.total_revenue = metrics.total_revenue
        current.last_30d_revenue = metrics.last_30d_revenue
        current.provider = target.provider
        current.provider_last_synced_at = now
        current.updated_at = now
    else:
        db.add(StartupMetricsCurrent(
            startup_id=target.startup_id,
            currency=metrics.currency,
            mrr=metrics.mrr,
            total_revenue=metrics.total_revenue,
            last_30d_revenue=metrics.last_30d_revenue,
            provider=target.provider,
            provider_last_synced_at=now,
        ))
    await db.flush()

    existing = await db.execute(
        select(StartupMetricsHistory.id).where(
            StartupMetricsHistory.startup_id == target.startup_id,
            StartupMetricsHistory.snapshot_date == today,
        )
    )
    if existing.first() is None:
        try:
            async with db.begin_nested():
                db.add(StartupMetricsHistory(
                    startup_id=target.startup_id,
                    currency=metrics.currency,
                    mrr=metrics.mrr,
                    total_revenue=metrics.total_revenue,
                    last_30d_revenue=metrics.last_30d_revenue,
                    provider=target.provider,
                    snapshot_date=today,
                ))
        except IntegrityError as e:
            logger.warning(
                f"History row for startup {target.startup_id} on {today} already written: {e}"
            )

    connection = await db.get(ProviderConnection, target.connection_id)
    if connection:
        connection.last_synced_at = now
        connection.updated_at = now

    await db.commit()


async def sync_one(db: AsyncSession, target: SyncTarget) -> SyncResult:
    """Fetch and store metrics for a single connection. Never raises."""
    try:
        adapter = get_provider_adapter(target.provider)
        metrics = await adapter.fetch_metrics(target.to_config())
    except Exception as e:
        logger.error(
            f"Error fetching {target.provider} metrics for startup {target.startup_id}: {e}"
        )
        return SyncResult(
            startup_id=target.startup_id,
            provider=target.provider,
            status="error",
            error=str(e),
        )

    try:
        await store_metrics(db, target, metrics)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception(f"Error storing metrics for startup {target.startup_id}: {e}")
        return SyncResult(
            startup_id=target.startup_id,
            provider=target.provider,
            status="error",
            error="Failed to store metrics",
        )

    logger.info(
        f"Synced {target.provider} for startup {target.startup_id}: "
        f"MRR {metrics.mrr} {metrics.currency}"
    )
    return SyncResult(
        startup_id=target.startup_id,
        provider=target.provider,
        status="success",
        metrics=metrics,
    )


async def sync_all(db: AsyncSession, targets: list[SyncTarget]) -> list[SyncResult]:
    """Sync every target in turn; failures are recorded, not raised."""
    results = []
    for target in targets:
        results.append(await sync_one(db, target))
    return results


async def run_batch_sync(db: Optional[AsyncSession] = None) -> list[SyncResult]:
    """Sync all connected accounts. Opens its own session when none is given."""

    async def _sync(session: AsyncSession) -> list[SyncResult]:
        targets = await get_connections_to_sync(session)
        logger.info(f"Starting metrics sync for {len(targets)} connections...")
        results = await sync_all(session, targets)
        failed = sum(1 for r in results if r.status == "error")
        logger.info(f"Metrics sync complete: {len(results) - failed} synced, {failed} failed")
        return results

    if db:
        return await _sync(db)
    async with async_session() as session:
        return await _sync(session)
