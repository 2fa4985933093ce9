"""Payment provider connections and their OAuth tokens."""

import enum
from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class ConnectionStatus(str, enum.Enum):
    """Lifecycle of a (startup, provider) pairing."""
    CONNECTED = "connected"
    REVOKED = "revoked"
    ERROR = "error"


class ProviderConnection(Base):
    """A startup's linked account at a payment provider.

    At most one connection per (startup, provider); the OAuth callback
    updates the existing row instead of inserting a second one.
    """

    __tablename__ = "provider_connections"
    __table_args__ = (
        UniqueConstraint("startup_id", "provider", name="uq_provider_connections_startup_provider"),
    )

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
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)  # stripe, paddle...
    provider_account_id: Mapped[str] = mapped_column(String(255), nullable=False)  # e.g. acct_123
    status: Mapped[ConnectionStatus] = mapped_column(
        Enum(ConnectionStatus, values_callable=lambda enum: [e.value for e in enum]),
        default=ConnectionStatus.CONNECTED,
        nullable=False
    )
    connected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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

    def __repr__(self) -> str:
        return f"<ProviderConnection {self.provider}:{self.provider_account_id} ({self.status.value})>"


class ProviderToken(Base):
    """OAuth credentials for a connection.

    Server-side only: never serialized into an API response.
    """

    __tablename__ = "provider_tokens"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    provider_connection_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("provider_connections.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    scope: Mapped[str | None] = mapped_column(String(500), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
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

    def __repr__(self) -> str:
        return f"<ProviderToken connection={self.provider_connection_id}>"
