"""MRR Leaderboard - FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from config import get_settings
from database import engine
from middleware.rate_limit import limiter, rate_limit_exceeded_handler
from models import Base
from routers import (
    admin_router,
    oauth_router,
    sponsorships_router,
    startups_router,
    sync_router,
    webhook_router,
)
from services.providers import get_registered_providers
from services.scheduler import start_scheduler, stop_scheduler

settings = get_settings()
logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables, report configuration gaps, run the optional scheduler."""
    # Alembic owns the schema in production; create_all only fills gaps locally
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if not settings.debug and settings.jwt_secret == "dev-secret-change-in-production":
        logger.warning("SECURITY WARNING: Using default JWT secret in production!")
        logger.warning("Set JWT_SECRET environment variable to a secure random value.")

    if not settings.stripe_webhook_secret:
        logger.warning("STRIPE_WEBHOOK_SECRET not set - all webhooks will be rejected")

    logger.info(f"Provider adapters registered: {', '.join(get_registered_providers())}")

    # Optional in-process metrics sync
    start_scheduler()

    yield

    stop_scheduler()
    await engine.dispose()


app = FastAPI(
    title="MRR Leaderboard API",
    description="Startup leaderboard ranked by verified payment-provider revenue",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(admin_router)
app.include_router(oauth_router)
app.include_router(sponsorships_router)
app.include_router(startups_router)
app.include_router(sync_router)
app.include_router(webhook_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "mrr-leaderboard"}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "MRR Leaderboard API",
        "version": "0.1.0",
        "docs": "/docs",
    }
