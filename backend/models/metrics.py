"""Revenue metrics - the current snapshot per startup and its daily history."""

from datetime import date, datetime, timezone
from uuid import uuid4

from sqlalchemy import BigInteger, Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class StartupMetricsCurrent(Base):
    """Latest metrics for a startup.

    Exactly zero or one row per startup, overwritten on every successful sync.
    Amounts are whole currency units.
    """

    __tablename__ = "startup_metrics_current"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4())
    )
    startup_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("startups.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)
    mrr: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_revenue: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    last_30d_revenue: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    provider_last_synced_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<StartupMetricsCurrent {self.startup_id}: {self.mrr} {self.currency} MRR>"


class StartupMetricsHistory(Base):
    """Daily metrics snapshot. Append-only, one row per startup per day."""

    __tablename__ = "startup_metrics_history"
    __table_args__ = (
        UniqueConstraint("startup_id", "snapshot_date", name="uq_metrics_history_startup_date"),
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
    currency: Mapped[str] = mapped_column(String(3), default="EUR", nullable=False)
    mrr: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    total_revenue: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    last_30d_revenue: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    provider: Mapped[str] = mapped_column(String(50), nullable=False)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<StartupMetricsHistory {self.startup_id}@{self.snapshot_date}: {self.mrr}>"
