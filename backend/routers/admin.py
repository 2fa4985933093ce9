"""Admin routes - operator views, manual sync and sponsorship control."""

import logging
from datetime import date, datetime
from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from database import get_db
from middleware.auth import require_admin
from models.metrics import StartupMetricsCurrent
from models.sponsorship import Sponsorship
from models.startup import Startup
from routers.startups import MetricsSchema
from services.auth_service import AuthService
from services.connections import list_connections_for_startups, revoke_connection
from services.leaderboard import get_startup_by_id
from services.metrics_sync import get_sync_target_for_startup, sync_one
from services.providers import ProviderMetrics
from services.sponsorships import cancel_sponsorship

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"])
settings = get_settings()


# Schemas
class LoginRequest(BaseModel):
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class ConnectionSummary(BaseModel):
    id: str
    provider: str
    status: str
    connected_at: datetime
    last_synced_at: Optional[datetime] = None


class AdminStartupResponse(BaseModel):
    id: str
    name: str
    slug: str
    website_url: str
    country: str
    category: str
    metrics: Optional[MetricsSchema] = None
    connections: list[ConnectionSummary] = []


class AdminSponsorshipResponse(BaseModel):
    id: str
    startup_id: str
    startup_name: str
    type: str
    category: Optional[str] = None
    status: str
    stripe_subscription_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ManualSyncResponse(BaseModel):
    success: bool
    metrics: ProviderMetrics


class MessageResponse(BaseModel):
    message: str


# Endpoints
@router.post("/login", response_model=TokenResponse)
async def admin_login(payload: LoginRequest):
    """Exchange the admin password for a bearer token."""
    if not AuthService.verify_password(payload.password, settings.admin_password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid password",
        )
    token, expires_in = AuthService.create_admin_token()
    return TokenResponse(access_token=token, expires_in=expires_in)


@router.get("/startups", response_model=list[AdminStartupResponse])
async def list_startups(
    _: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """All startups, newest first, with metrics and connection status."""
    result = await db.execute(select(Startup).order_by(Startup.created_at.desc()))
    startups = result.scalars().all()
    startup_ids = [s.id for s in startups]

    metrics_by_startup: dict[str, StartupMetricsCurrent] = {}
    if startup_ids:
        metrics_result = await db.execute(
            select(StartupMetricsCurrent).where(StartupMetricsCurrent.startup_id.in_(startup_ids))
        )
        metrics_by_startup = {m.startup_id: m for m in metrics_result.scalars().all()}
    connections = await list_connections_for_startups(db, startup_ids)

    return [
        AdminStartupResponse(
            id=s.id,
            name=s.name,
            slug=s.slug,
            website_url=s.website_url,
            country=s.country,
            category=s.category,
            metrics=(
                MetricsSchema.model_validate(metrics_by_startup[s.id])
                if s.id in metrics_by_startup else None
            ),
            connections=[
                ConnectionSummary(
                    id=c.id,
                    provider=c.provider,
                    status=c.status.value,
                    connected_at=c.connected_at,
                    last_synced_at=c.last_synced_at,
                )
                for c in connections.get(s.id, [])
            ],
        )
        for s in startups
    ]


@router.post("/sync/{startup_id}", response_model=ManualSyncResponse)
async def sync_startup(
    startup_id: UUID,
    _: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Sync one startup's connected account now."""
    startup = await get_startup_by_id(db, str(startup_id))
    if startup is None:
        raise HTTPException(status_code=404, detail="Startup not found")

    target = await get_sync_target_for_startup(db, startup.id)
    if target is None:
        raise HTTPException(status_code=404, detail="No active connection found")

    result = await sync_one(db, target)
    if result.status != "success" or result.metrics is None:
        logger.warning(f"Manual sync failed for {startup.slug}: {result.error}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=result.error or "Failed to sync",
        )
    return ManualSyncResponse(success=True, metrics=result.metrics)


@router.get("/sponsorships", response_model=list[AdminSponsorshipResponse])
async def list_sponsorships(
    _: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """All sponsorships, newest first, with the startup name attached."""
    result = await db.execute(select(Sponsorship).order_by(Sponsorship.created_at.desc()))
    sponsorships = result.scalars().all()

    startup_ids = list({s.startup_id for s in sponsorships})
    startup_names: dict[str, str] = {}
    if startup_ids:
        names_result = await db.execute(
            select(Startup.id, Startup.name).where(Startup.id.in_(startup_ids))
        )
        startup_names = {row[0]: row[1] for row in names_result.all()}

    return [
        AdminSponsorshipResponse(
            id=s.id,
            startup_id=s.startup_id,
            startup_name=startup_names.get(s.startup_id, "Unknown"),
            type=s.type.value,
            category=s.category,
            status=s.status.value,
            stripe_subscription_id=s.stripe_subscription_id,
            start_date=s.start_date,
            end_date=s.end_date,
        )
        for s in sponsorships
    ]


@router.post("/sponsorships/{sponsorship_id}/deactivate", response_model=MessageResponse)
async def deactivate_sponsorship(
    sponsorship_id: UUID,
    _: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Cancel a sponsorship immediately."""
    sponsorship = await cancel_sponsorship(db, str(sponsorship_id))
    if sponsorship is None:
        raise HTTPException(status_code=404, detail="Sponsorship not found")
    return MessageResponse(message="Sponsorship deactivated")


@router.post("/connections/{connection_id}/revoke", response_model=MessageResponse)
async def revoke_provider_connection(
    connection_id: UUID,
    _: Annotated[str, Depends(require_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Stop syncing a connection (history is kept)."""
    connection = await revoke_connection(db, str(connection_id))
    if connection is None:
        raise HTTPException(status_code=404, detail="Connection not found")
    return MessageResponse(message=f"{connection.provider} connection revoked")
