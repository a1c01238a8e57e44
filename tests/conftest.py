"""
Shared fixtures for the delay lookup tests.

Provides a fixed clock, in-memory stores, a scripted history fetcher,
and an isolated in-memory SQLite database for the SQL stores.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from delaylookup.cache import InMemoryResultCache
from delaylookup.identity import Identity, InMemoryIdentityStore, Tier
from delaylookup.models import Base
from delaylookup.service import LookupService
from delaylookup.upstream import HistoricalFlight

NOW = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)
TODAY = NOW.date()
YESTERDAY = TODAY - timedelta(days=1)


def make_flights(delays_minutes: List[float], cancelled: int = 0) -> List[HistoricalFlight]:
    """Completed flights with the given arrival delays, then cancellations."""
    flights = [
        HistoricalFlight(cancelled=False, arrival_delay=int(d * 60))
        for d in delays_minutes
    ]
    flights.extend(HistoricalFlight(cancelled=True, arrival_delay=0) for _ in range(cancelled))
    return flights


def make_identity(
    install_id: str = 'ext_testinstall00001',
    usage_today: int = 0,
    usage_day=TODAY,
    total_usage: int = 0,
    tier: Tier = Tier.FREE,
) -> Identity:
    return Identity(
        id=install_id,
        created_at=NOW - timedelta(days=30),
        last_used_at=NOW - timedelta(days=1),
        usage_today=usage_today,
        usage_day=usage_day,
        total_usage=total_usage,
        tier=tier,
    )


class FakeFetcher:
    """History fetcher returning scripted records or raising a scripted error."""

    def __init__(self, records: Optional[List[HistoricalFlight]] = None, error: Exception = None,
                 configured: bool = True):
        self.records = records if records is not None else make_flights([10, 20, 30, 40])
        self.error = error
        self.is_configured = configured
        self.calls: List[str] = []

    def fetch_history(self, flight_number: str) -> List[HistoricalFlight]:
        self.calls.append(flight_number)
        if self.error is not None:
            raise self.error
        return list(self.records)


@pytest.fixture
def identities():
    return InMemoryIdentityStore()


@pytest.fixture
def result_cache():
    return InMemoryResultCache()


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def service(identities, result_cache, fetcher):
    return LookupService(
        identities=identities,
        cache=result_cache,
        fetcher=fetcher,
        daily_limit=20,
        cache_ttl=timedelta(days=3),
        prune_every=0,
        clock=lambda: NOW,
    )


@pytest.fixture
def session_factory():
    """Session factory bound to a private in-memory SQLite database."""
    engine = create_engine(
        'sqlite://',
        poolclass=StaticPool,
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()
