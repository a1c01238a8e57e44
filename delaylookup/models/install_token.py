"""
InstallToken model - one row per registered extension install.

Holds the identity presented on every lookup together with the
counters used for daily quota enforcement.

Design notes:
- usage_today is only meaningful for the day stored in usage_date;
  a row from an earlier day is stale and logically reads as zero
- total_usage only ever grows
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import String, Integer, Date, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from delaylookup.models.base import Base


class InstallToken(Base):
    """Durable identity and usage record for a caller."""

    __tablename__ = 'install_tokens'

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        comment='Opaque install id presented by the caller'
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    last_used_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    usage_today: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment='Non-cached lookups counted against usage_date'
    )

    usage_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment='UTC day usage_today applies to'
    )

    total_usage: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    tier: Mapped[str] = mapped_column(
        String(16),
        default='free',
        nullable=False,
    )

    def __repr__(self) -> str:
        return f'<InstallToken {self.id} {self.tier} {self.usage_today}@{self.usage_date}>'
