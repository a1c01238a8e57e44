"""
Unit tests for the result cache.

Tests key normalization, read-time freshness, overwrite semantics,
and batched pruning for both cache implementations.
"""

from datetime import timedelta

import pytest

from delaylookup.cache import (
    CacheEntry,
    InMemoryResultCache,
    SqlResultCache,
    normalize_flight_number,
)
from tests.conftest import NOW

STATS = {'sample_size': 5, 'avg_delay': 12, 'min_delay': -3, 'max_delay': 40,
         'p25': 2, 'p75': 20, 'cancelled_count': 1}


class TestNormalizeFlightNumber:
    """Test cache key derivation."""

    @pytest.mark.parametrize('raw,expected', [
        ('DL1234', 'DL1234'),
        ('dl1234', 'DL1234'),
        (' dl 1234 ', 'DL1234'),
        ('ua\t 9\n01', 'UA901'),
    ])
    def test_normalize(self, raw, expected):
        assert normalize_flight_number(raw) == expected

    @pytest.mark.parametrize('raw', ['DL1234', ' b6 12 ', 'x', '', 'Aa 0001'])
    def test_normalize_is_idempotent(self, raw):
        once = normalize_flight_number(raw)
        assert normalize_flight_number(once) == once


class TestCacheEntryFreshness:
    """Test the TTL rule."""

    def test_younger_than_ttl_is_fresh(self):
        entry = CacheEntry(key='DL1234', stats=STATS, fetched_at=NOW - timedelta(days=2, hours=23))
        assert entry.is_fresh(NOW, timedelta(days=3))

    def test_exactly_ttl_is_stale(self):
        entry = CacheEntry(key='DL1234', stats=STATS, fetched_at=NOW - timedelta(days=3))
        assert not entry.is_fresh(NOW, timedelta(days=3))

    def test_older_than_ttl_is_stale(self):
        entry = CacheEntry(key='DL1234', stats=STATS, fetched_at=NOW - timedelta(days=10))
        assert not entry.is_fresh(NOW, timedelta(days=3))


class TestSqlResultCache:
    """Test the database-backed cache."""

    def test_get_missing(self, session_factory):
        cache = SqlResultCache(session_factory)
        assert cache.get('DL1234') is None

    def test_put_then_get(self, session_factory):
        cache = SqlResultCache(session_factory)
        cache.put('DL1234', STATS, NOW)

        entry = cache.get('DL1234')

        assert entry.key == 'DL1234'
        assert entry.stats == STATS
        assert entry.fetched_at == NOW

    def test_put_overwrites(self, session_factory):
        cache = SqlResultCache(session_factory)
        cache.put('DL1234', STATS, NOW - timedelta(days=5))
        insufficient = {'error': 'No flight data available', 'insufficient_data': True}
        cache.put('DL1234', insufficient, NOW)

        entry = cache.get('DL1234')

        assert entry.stats == insufficient
        assert entry.fetched_at == NOW
        assert cache.count() == 1

    def test_stale_entry_is_kept_until_pruned(self, session_factory):
        cache = SqlResultCache(session_factory)
        cache.put('DL1234', STATS, NOW - timedelta(days=4))
        cache.put('UA901', STATS, NOW - timedelta(hours=1))

        assert cache.get('DL1234') is not None

        removed = cache.prune(NOW - timedelta(days=3))

        assert removed == 1
        assert cache.get('DL1234') is None
        assert cache.get('UA901') is not None


class TestInMemoryResultCache:
    """Test the in-process cache."""

    def test_put_then_get(self):
        cache = InMemoryResultCache()
        cache.put('AA100', STATS, NOW)

        assert cache.get('AA100') == CacheEntry(key='AA100', stats=STATS, fetched_at=NOW)

    def test_prune(self):
        cache = InMemoryResultCache()
        cache.put('AA100', STATS, NOW - timedelta(days=4))
        cache.put('AA200', STATS, NOW)

        assert cache.prune(NOW - timedelta(days=3)) == 1
        assert cache.count() == 1

    def test_hit_counters(self):
        cache = InMemoryResultCache()
        cache.record_hit()
        cache.record_hit()
        cache.record_miss()

        stats = cache.stats

        assert stats['hits'] == 2
        assert stats['misses'] == 1
        assert stats['hit_rate'] == pytest.approx(2 / 3)
