"""Database models."""

from database import Base

# Leaderboard
from models.startup import Startup, slugify
from models.metrics import StartupMetricsCurrent, StartupMetricsHistory

# Provider connections
from models.provider_connection import ConnectionStatus, ProviderConnection, ProviderToken

# Monetization
from models.sponsorship import (
    SPONSORSHIP_MONTHLY_PRICES,
    Sponsorship,
    SponsorshipStatus,
    SponsorshipType,
)

__all__ = [
    # Base
    "Base",
    # Leaderboard
    "Startup",
    "slugify",
    "StartupMetricsCurrent",
    "StartupMetricsHistory",
    # Provider connections
    "ConnectionStatus",
    "ProviderConnection",
    "ProviderToken",
    # Monetization
    "SPONSORSHIP_MONTHLY_PRICES",
    "Sponsorship",
    "SponsorshipStatus",
    "SponsorshipType",
]
