"""Startup routes - submission and the public leaderboard."""

from datetime import date, datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from middleware.rate_limit import SUBMISSION_LIMIT, limiter
from services.leaderboard import (
    DuplicateStartupError,
    LeaderboardFilters,
    RankedStartup,
    SortField,
    create_startup,
    get_aggregates,
    get_metrics_history,
    get_startup_detail,
    list_ranked,
)

router = APIRouter(prefix="/api/startups", tags=["startups"])


# ============================================================================
# Pydantic Schemas
# ============================================================================

class StartupCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    website_url: str = Field(min_length=1, max_length=500)
    country: str = Field(min_length=2, max_length=2)
    category: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    logo_url: Optional[str] = None


class StartupSchema(BaseModel):
    id: str
    name: str
    slug: str
    website_url: str
    country: str
    category: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MetricsSchema(BaseModel):
    currency: str
    mrr: int
    total_revenue: int
    last_30d_revenue: int
    provider: str
    provider_last_synced_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SponsorshipSummarySchema(BaseModel):
    id: str
    type: str
    category: Optional[str] = None
    start_date: Optional[date] = None


class LeaderboardEntrySchema(StartupSchema):
    rank: int
    is_sponsored: bool = False
    metrics: Optional[MetricsSchema] = None
    sponsorship: Optional[SponsorshipSummarySchema] = None


class StartupDetailSchema(StartupSchema):
    is_sponsored: bool = False
    metrics: Optional[MetricsSchema] = None
    sponsorship: Optional[SponsorshipSummarySchema] = None


class HistoryPointSchema(BaseModel):
    snapshot_date: date
    currency: str
    mrr: int
    total_revenue: int
    last_30d_revenue: int
    provider: str

    class Config:
        from_attributes = True


class AggregatesSchema(BaseModel):
    total_mrr: int
    startup_count: int


class StartupCreatedSchema(BaseModel):
    startup: StartupSchema


def _sponsorship_summary(entry: RankedStartup) -> Optional[SponsorshipSummarySchema]:
    if entry.sponsorship is None:
        return None
    return SponsorshipSummarySchema(
        id=entry.sponsorship.id,
        type=entry.sponsorship.type.value,
        category=entry.sponsorship.category,
        start_date=entry.sponsorship.start_date,
    )


def _detail_fields(entry: RankedStartup) -> dict:
    return {
        **StartupSchema.model_validate(entry.startup).model_dump(),
        "is_sponsored": entry.is_sponsored,
        "metrics": MetricsSchema.model_validate(entry.metrics) if entry.metrics else None,
        "sponsorship": _sponsorship_summary(entry),
    }


# ============================================================================
# Routes
# ============================================================================

@router.get("", response_model=list[LeaderboardEntrySchema])
async def list_startups(
    db: Annotated[AsyncSession, Depends(get_db)],
    country: Annotated[Optional[list[str]], Query()] = None,
    category: Annotated[Optional[list[str]], Query()] = None,
    provider: Annotated[Optional[list[str]], Query()] = None,
    min_mrr: Optional[float] = None,
    max_mrr: Optional[float] = None,
    sort_by: SortField = "mrr",
):
    """Ranked leaderboard. Active sponsors come first, then everyone else."""
    filters = LeaderboardFilters(
        country=country or [],
        category=category or [],
        provider=provider or [],
        min_mrr=min_mrr,
        max_mrr=max_mrr,
        sort_by=sort_by,
    )
    ranked = await list_ranked(db, filters)
    return [
        LeaderboardEntrySchema(rank=position, **_detail_fields(entry))
        for position, entry in enumerate(ranked, start=1)
    ]


@router.get("/aggregates", response_model=AggregatesSchema)
async def aggregates(db: Annotated[AsyncSession, Depends(get_db)]):
    """Total MRR and number of listed startups."""
    return AggregatesSchema(**await get_aggregates(db))


@router.post("", response_model=StartupCreatedSchema, status_code=status.HTTP_201_CREATED)
@limiter.limit(SUBMISSION_LIMIT)
async def submit_startup(
    request: Request,
    payload: StartupCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Submit a startup. The slug is derived from the name."""
    try:
        startup = await create_startup(
            db,
            name=payload.name,
            website_url=payload.website_url,
            country=payload.country,
            category=payload.category,
            description=payload.description,
            logo_url=payload.logo_url,
        )
    except DuplicateStartupError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return StartupCreatedSchema(startup=StartupSchema.model_validate(startup))


@router.get("/{slug}", response_model=StartupDetailSchema)
async def get_startup(slug: str, db: Annotated[AsyncSession, Depends(get_db)]):
    entry = await get_startup_detail(db, slug)
    if entry is None:
        raise HTTPException(status_code=404, detail="Startup not found")
    return StartupDetailSchema(**_detail_fields(entry))


@router.get("/{slug}/history", response_model=list[HistoryPointSchema])
async def get_history(
    slug: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    days: Annotated[Optional[int], Query(ge=1, le=3650)] = None,
):
    """Daily metrics history for charts, oldest first."""
    entry = await get_startup_detail(db, slug)
    if entry is None:
        raise HTTPException(status_code=404, detail="Startup not found")
    history = await get_metrics_history(db, entry.startup.id, days)
    return [HistoryPointSchema.model_validate(row) for row in history]
