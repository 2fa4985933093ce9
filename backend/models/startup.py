"""Startup model - a company listed on the leaderboard."""

import re
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base

_NON_SLUG_CHARS = re.compile(r"[^\w\s-]")
_SEPARATOR_RUNS = re.compile(r"[\s_-]+")


def slugify(name: str) -> str:
    """Derive a URL-safe slug from a startup name.

    "Acme Inc." -> "acme-inc"
    """
    slug = name.lower().strip()
    slug = _NON_SLUG_CHARS.sub("", slug)
    slug = _SEPARATOR_RUNS.sub("-", slug)
    return slug.strip("-")


class Startup(Base):
    """A startup submitted to the leaderboard.

    Created once through submission; only admins update it afterwards.
    Metrics, connections and sponsorships live in their own tables and are
    joined in application code.
    """

    __tablename__ = "startups"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    website_url: Mapped[str] = mapped_column(String(500), nullable=False)
    country: Mapped[str] = mapped_column(String(2), nullable=False, index=True)  # ISO code, e.g. FI
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)  # SaaS, App, Agency...
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Startup {self.slug}: {self.name}>"
