"""
CachedStats model - last computed delay summary per flight number.

Rows are overwritten on every fresh computation (last writer wins).
Freshness is decided by the reader from fetched_at; stale rows are
removed in batches rather than on read.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from delaylookup.models.base import Base


class CachedStats(Base):
    """Cached statistics keyed by normalized flight number."""

    __tablename__ = 'flight_stats_cache'

    flight_number: Mapped[str] = mapped_column(
        String(16),
        primary_key=True,
        comment='Normalized flight number (e.g., DL1234)'
    )

    fetched_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    stats: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment='Statistics result stored verbatim, including insufficient-data results'
    )

    def __repr__(self) -> str:
        return f'<CachedStats {self.flight_number} @ {self.fetched_at}>'
