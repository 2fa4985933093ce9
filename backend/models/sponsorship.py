"""Sponsorship model - paid promotional placements."""

import enum
from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import Date, DateTime, Enum, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class SponsorshipType(str, enum.Enum):
    """Promotional tiers, each a monthly Stripe subscription."""
    FEATURED_LISTING = "featured_listing"
    CATEGORY_HERO = "category_hero"        # Scoped to the startup's category
    HOMEPAGE_SPONSOR = "homepage_sponsor"


class SponsorshipStatus(str, enum.Enum):
    """Sponsorship lifecycle. Only ACTIVE affects ranking."""
    PENDING = "pending"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


# Monthly list price per tier, in EUR
SPONSORSHIP_MONTHLY_PRICES: dict[SponsorshipType, int] = {
    SponsorshipType.FEATURED_LISTING: 49,
    SponsorshipType.CATEGORY_HERO: 99,
    SponsorshipType.HOMEPAGE_SPONSOR: 199,
}


class Sponsorship(Base):
    """A sponsorship purchase for a startup.

    Created as PENDING when checkout starts and moved along by billing
    webhooks. The application keeps at most one ACTIVE row per startup;
    the schema does not enforce it.
    """

    __tablename__ = "sponsorships"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    startup_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[SponsorshipType] = mapped_column(
        Enum(SponsorshipType, values_callable=lambda enum: [e.value for e in enum]),
        nullable=False
    )
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[SponsorshipStatus] = mapped_column(
        Enum(SponsorshipStatus, values_callable=lambda enum: [e.value for e in enum]),
        default=SponsorshipStatus.PENDING,
        nullable=False,
        index=True
    )

    # Stripe billing identifiers
    stripe_customer_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_subscription_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    stripe_price_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    stripe_checkout_session_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )

    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    @property
    def is_active(self) -> bool:
        return self.status == SponsorshipStatus.ACTIVE

    def __repr__(self) -> str:
        return f"<Sponsorship {self.type.value} for {self.startup_id} ({self.status.value})>"
