"""
Lookup orchestration - sequences one flight delay lookup.

Request stages, each terminal on failure:
1. Validate: install id and flight number present
2. Authenticate: install id must exist
3. Quota: reconcile the usage day, reject free installs at the limit
4. Cache: serve fresh statistics without charging usage
5. Fetch: pull recent history from FlightAware
6. Compute: reduce history to a delay summary
7. Cache write: store the result, insufficient-data results included
8. Usage: charge exactly one unit for the upstream lookup

Upstream failures and anything before stage 5 leave both the cache and
the usage counters untouched.

The service keeps no per-request state between calls; everything
durable lives in the injected stores, so one instance can serve many
threads at once.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol

from delaylookup.analytics import compute_delay_stats
from delaylookup.cache import ResultCache, default_ttl, normalize_flight_number
from delaylookup.config import config
from delaylookup.errors import (
    InvalidFormat,
    InvalidIdentity,
    MissingFields,
    QuotaExceeded,
    ServerMisconfigured,
)
from delaylookup.identity import Identity, IdentityStore
from delaylookup.models import utc_now
from delaylookup.upstream import HistoricalFlight

logger = logging.getLogger(__name__)

SOURCE_CACHE = 'cache'
SOURCE_API = 'api'


class HistoryFetcher(Protocol):
    """Anything that can fetch flight history for a flight number."""

    @property
    def is_configured(self) -> bool: ...

    def fetch_history(self, flight_number: str) -> List[HistoricalFlight]: ...


@dataclass(frozen=True)
class UsageInfo:
    today: int
    limit: int

    def to_dict(self) -> Dict[str, int]:
        return {'today': self.today, 'limit': self.limit}


@dataclass(frozen=True)
class LookupResult:
    """Outcome of a successful lookup."""
    source: str
    stats: Dict[str, Any]
    usage: Optional[UsageInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'source': self.source, 'stats': self.stats}
        if self.usage is not None:
            result['usage'] = self.usage.to_dict()
        return result


class LookupService:
    """
    Request handler for registration and flight delay lookups.

    Stores and the history fetcher are injected so tests can run
    against in-memory implementations and a fake upstream.
    """

    def __init__(
        self,
        identities: IdentityStore,
        cache: ResultCache,
        fetcher: HistoryFetcher,
        daily_limit: Optional[int] = None,
        cache_ttl: Optional[timedelta] = None,
        prune_every: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.identities = identities
        self.cache = cache
        self.fetcher = fetcher
        self.daily_limit = daily_limit if daily_limit is not None else config.quota.daily_limit
        self.cache_ttl = cache_ttl or default_ttl()
        self.prune_every = prune_every if prune_every is not None else config.cache.prune_every_writes
        self._clock = clock or utc_now

        self._writes_lock = threading.Lock()
        self._cache_writes = 0

    def register(self) -> Identity:
        """Issue a fresh install identity. Repeated calls are unrelated."""
        return self.identities.create()

    def lookup(
        self,
        install_id: Optional[str],
        flight_number: Optional[str],
        origin: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> LookupResult:
        """
        Delay statistics for a flight number on behalf of an install.

        origin and destination are accepted for logging only; they never
        change the result or the cache key.

        Raises:
            MissingFields, InvalidIdentity, QuotaExceeded, InvalidFormat,
            ServerMisconfigured, UpstreamError
        """
        if not install_id or not flight_number:
            raise MissingFields(['installId', 'flightNumber'])
        if not isinstance(install_id, str) or not isinstance(flight_number, str):
            raise InvalidFormat('installId and flightNumber must be strings')

        identity = self.identities.get(install_id)
        if identity is None:
            logger.info(f'Rejected lookup with unknown install id {install_id}')
            raise InvalidIdentity()

        now = self._clock()
        today = now.date()

        usage_today = identity.usage_on(today)
        if identity.tier.is_quota_enforced and usage_today >= self.daily_limit:
            logger.info(f'Daily limit reached for {install_id} ({usage_today}/{self.daily_limit})')
            raise QuotaExceeded(self.daily_limit)

        key = normalize_flight_number(flight_number)
        entry = self.cache.get(key)
        if entry is not None and entry.is_fresh(now, self.cache_ttl):
            self.cache.record_hit()
            logger.info(f'Cache hit for {key}')
            return LookupResult(source=SOURCE_CACHE, stats=entry.stats)

        self.cache.record_miss()
        logger.info(f'Cache miss for {key} (route {origin or "?"}-{destination or "?"}), calling FlightAware')

        if not self.fetcher.is_configured:
            logger.error('FlightAware API key not configured')
            raise ServerMisconfigured()

        records = self.fetcher.fetch_history(key)
        stats = compute_delay_stats(records).to_dict()

        self.cache.put(key, stats, now)
        self._maybe_prune(now)

        updated = self.identities.record_usage(install_id, today, now)
        if updated is None:
            # Install vanished mid-request; still answer with what we computed
            updated = identity.with_usage_recorded(today, now)

        usage = None
        if updated.tier.is_quota_enforced:
            usage = UsageInfo(today=updated.usage_on(today), limit=self.daily_limit)

        return LookupResult(source=SOURCE_API, stats=stats, usage=usage)

    def _maybe_prune(self, now: datetime) -> None:
        """Batch-delete stale cache rows every prune_every writes."""
        if self.prune_every <= 0:
            return
        with self._writes_lock:
            self._cache_writes += 1
            due = self._cache_writes % self.prune_every == 0
        if due:
            self.cache.prune(now - self.cache_ttl)
