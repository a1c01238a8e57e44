"""
Flight Delay Lookup Backend Package.

Answers "is flight X usually delayed?" from FlightAware history, built with
Flask, SQLAlchemy, requests, and NumPy.

Modules:
    api/         REST endpoints for registration, lookups, and system status
    models/      SQLAlchemy ORM models (InstallToken, CachedStats)
    upstream/    FlightAware AeroAPI history client with identifier fallback
    analytics/   NumPy-based delay statistics
    identity.py  Install tokens and per-day quota bookkeeping
    cache.py     Time-to-live result cache keyed by flight number
    service.py   Lookup orchestration (auth, quota, cache, fetch, compute)
    client.py    HTTP client used by the browser-side collaborator
    fanout.py    Concurrent lookups for every flight detected on a page
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
