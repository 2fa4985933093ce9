"""Provider connection store - upserts keyed by (startup, provider)."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.provider_connection import ConnectionStatus, ProviderConnection, ProviderToken

logger = logging.getLogger(__name__)


async def upsert_connection(
    db: AsyncSession,
    startup_id: str,
    provider: str,
    provider_account_id: str,
    tokens: dict,
    scope: Optional[str] = None,
) -> tuple[ProviderConnection, ProviderToken]:
    """Record a completed OAuth authorization.

    Updates the existing (startup, provider) connection or inserts one, then
    upserts its token row. Both writes commit together.
    """
    now = datetime.now(timezone.utc)

    result = await db.execute(
        select(ProviderConnection).where(
            ProviderConnection.startup_id == startup_id,
            ProviderConnection.provider == provider,
        )
    )
    connection = result.scalar_one_or_none()

    if connection:
        connection.provider_account_id = provider_account_id
        connection.status = ConnectionStatus.CONNECTED
        connection.connected_at = now
        connection.updated_at = now
    else:
        connection = ProviderConnection(
            startup_id=startup_id,
            provider=provider,
            provider_account_id=provider_account_id,
            status=ConnectionStatus.CONNECTED,
            connected_at=now,
        )
        db.add(connection)
    await db.flush()

    expires_in = tokens.get("expires_in")
    expires_at = now + timedelta(seconds=int(expires_in)) if expires_in else None

    token_result = await db.execute(
        select(ProviderToken).where(ProviderToken.provider_connection_id == connection.id)
    )
    token = token_result.scalar_one_or_none()

    if token:
        token.access_token = tokens["access_token"]
        token.refresh_token = tokens.get("refresh_token")
        token.scope = tokens.get("scope") or scope
        token.expires_at = expires_at
        token.updated_at = now
    else:
        token = ProviderToken(
            provider_connection_id=connection.id,
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            scope=tokens.get("scope") or scope,
            expires_at=expires_at,
        )
        db.add(token)

    await db.commit()
    logger.info(f"{provider} connected for startup {startup_id} ({provider_account_id})")
    return connection, token


async def list_connections_for_startups(
    db: AsyncSession, startup_ids: list[str]
) -> dict[str, list[ProviderConnection]]:
    """Map startup_id -> its connections."""
    if not startup_ids:
        return {}
    result = await db.execute(
        select(ProviderConnection).where(ProviderConnection.startup_id.in_(startup_ids))
    )
    lookup: dict[str, list[ProviderConnection]] = {}
    for connection in result.scalars().all():
        lookup.setdefault(connection.startup_id, []).append(connection)
    return lookup


async def revoke_connection(db: AsyncSession, connection_id: str) -> Optional[ProviderConnection]:
    """Stop syncing a connection without deleting its history."""
    connection = await db.get(ProviderConnection, connection_id)
    if connection is None:
        return None
    connection.status = ConnectionStatus.REVOKED
    connection.updated_at = datetime.now(timezone.utc)
    await db.commit()
    logger.info(f"Connection revoked: {connection.id}")
    return connection
