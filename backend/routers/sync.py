"""Batch metrics sync endpoint, called by an external scheduler."""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.auth import verify_cron_secret
from services.metrics_sync import run_batch_sync

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/cron", tags=["cron"])


class SyncResultItem(BaseModel):
    startup_id: str = Field(serialization_alias="startupId")
    provider: str
    status: str
    error: Optional[str] = None


class BatchSyncResponse(BaseModel):
    synced: int
    failed: int
    results: list[SyncResultItem]


@router.api_route("/sync-metrics", methods=["GET", "POST"], response_model=BatchSyncResponse)
async def sync_metrics(
    _: Annotated[None, Depends(verify_cron_secret)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Sync metrics for every connected provider account.

    Individual failures are reported in ``results``; the call itself
    succeeds as long as the batch ran.
    """
    results = await run_batch_sync(db)
    items = [
        SyncResultItem(
            startup_id=r.startup_id,
            provider=r.provider,
            status=r.status,
            error=r.error,
        )
        for r in results
    ]
    return BatchSyncResponse(
        synced=sum(1 for r in results if r.status == "success"),
        failed=sum(1 for r in results if r.status == "error"),
        results=items,
    )
