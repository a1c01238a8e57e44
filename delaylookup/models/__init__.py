"""
Database models for the delay lookup service.

Two small tables, both keyed for single-row reads and writes:
1. install_tokens - caller identity and quota counters
2. flight_stats_cache - computed delay statistics per flight number
"""

from delaylookup.models.base import Base, engine, SessionLocal, init_db, get_session, utc_now, as_utc
from delaylookup.models.install_token import InstallToken
from delaylookup.models.cached_stats import CachedStats

__all__ = [
    'Base',
    'engine',
    'SessionLocal',
    'init_db',
    'get_session',
    'utc_now',
    'as_utc',
    'InstallToken',
    'CachedStats',
]
