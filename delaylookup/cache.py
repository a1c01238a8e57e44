"""
Result cache for computed delay statistics.

Maps a normalized flight number to the last statistics computed for it
and the time they were computed. Freshness is a read-time decision:
an entry older than the TTL (3 days by default) is treated exactly like
a missing one, but it is not deleted on read. Stale rows are removed in
batches via prune().

Design rationale:
Delay history for a flight number moves slowly, so a multi-day TTL
removes almost all repeat upstream calls when many installs look at the
same popular flights. Insufficient-data results are cached too, so
flights with sparse history do not hammer the provider.
"""

import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Protocol

from sqlalchemy import delete
from sqlalchemy.orm import sessionmaker

from delaylookup.config import config
from delaylookup.models import CachedStats, SessionLocal, get_session, as_utc

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r'\s+')


def normalize_flight_number(flight_number: str) -> str:
    """
    Canonical form of a flight number: whitespace stripped, uppercased.

    Used both as the cache key and as the identifier sent upstream.
    Route (origin/destination) never participates in the key.
    """
    return _WHITESPACE.sub('', flight_number).upper()


def default_ttl() -> timedelta:
    return timedelta(days=config.cache.ttl_days)


@dataclass(frozen=True)
class CacheEntry:
    """Cached statistics for one flight number."""
    key: str
    stats: Dict[str, Any]
    fetched_at: datetime

    def age(self, now: datetime) -> timedelta:
        return now - self.fetched_at

    def is_fresh(self, now: datetime, ttl: timedelta) -> bool:
        return self.age(now) < ttl


class ResultCache(Protocol):
    """Anything that can store and return statistics by flight number."""

    def get(self, key: str) -> Optional[CacheEntry]: ...

    def put(self, key: str, stats: Dict[str, Any], now: datetime) -> None: ...

    def prune(self, cutoff: datetime) -> int: ...

    def record_hit(self) -> None: ...

    def record_miss(self) -> None: ...


class _HitCounter:
    """Hit/miss bookkeeping shared by cache implementations."""

    def __init__(self):
        self._counter_lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def record_hit(self) -> None:
        with self._counter_lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._counter_lock:
            self._misses += 1

    @property
    def stats(self) -> dict:
        """Get cache statistics."""
        with self._counter_lock:
            total = self._hits + self._misses
            return {
                'hits': self._hits,
                'misses': self._misses,
                'hit_rate': self._hits / total if total > 0 else 0,
            }


class SqlResultCache(_HitCounter):
    """Result cache backed by the flight_stats_cache table."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        super().__init__()
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[CacheEntry]:
        """Raw entry for key regardless of age, or None."""
        with self._session_factory() as session:
            row = session.get(CachedStats, key)
            if row is None:
                return None
            return CacheEntry(key=row.flight_number, stats=row.stats, fetched_at=as_utc(row.fetched_at))

    def put(self, key: str, stats: Dict[str, Any], now: datetime) -> None:
        """Overwrite the entry for key; last writer wins."""
        with get_session(self._session_factory) as session:
            session.merge(CachedStats(flight_number=key, stats=stats, fetched_at=now))

    def prune(self, cutoff: datetime) -> int:
        """Delete entries fetched before cutoff. Returns count removed."""
        with get_session(self._session_factory) as session:
            result = session.execute(
                delete(CachedStats).where(CachedStats.fetched_at < cutoff)
            )
            removed = result.rowcount
        if removed:
            logger.info(f'Cache prune: removed {removed} stale entries')
        return removed

    def count(self) -> int:
        with self._session_factory() as session:
            return session.query(CachedStats).count()


class InMemoryResultCache(_HitCounter):
    """Thread-safe in-process result cache."""

    def __init__(self):
        super().__init__()
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, stats: Dict[str, Any], now: datetime) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, stats=stats, fetched_at=now)

    def prune(self, cutoff: datetime) -> int:
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.fetched_at < cutoff]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info(f'Cache prune: removed {len(stale)} stale entries')
        return len(stale)

    def count(self) -> int:
        with self._lock:
            return len(self._entries)
