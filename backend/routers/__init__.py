"""Routers package."""

from .admin import router as admin_router
from .oauth import router as oauth_router
from .sponsorships import router as sponsorships_router
from .startups import router as startups_router
from .sync import router as sync_router
from .webhook import router as webhook_router

__all__ = [
    "admin_router",
    "oauth_router",
    "sponsorships_router",
    "startups_router",
    "sync_router",
    "webhook_router",
]
