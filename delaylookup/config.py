"""
Configuration management for the delay lookup service.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()


def _parse_origins(value: str) -> Tuple[str, ...]:
    """Parse comma-separated CORS origins, '*' meaning any."""
    origins = tuple(o.strip() for o in value.split(',') if o.strip())
    return origins or ('*',)


@dataclass(frozen=True)
class FlightAwareConfig:
    """FlightAware AeroAPI configuration."""
    api_key: Optional[str] = os.getenv('FLIGHTAWARE_API_KEY') or None
    base_url: str = os.getenv('FLIGHTAWARE_BASE_URL', 'https://aeroapi.flightaware.com/aeroapi')
    timeout_seconds: float = float(os.getenv('FLIGHTAWARE_TIMEOUT_SECONDS', '15'))

    # Trailing window queried for history
    history_window_days: int = int(os.getenv('HISTORY_WINDOW_DAYS', '7'))

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = os.getenv('DATABASE_URL', 'sqlite:///delaylookup.db')

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')


@dataclass(frozen=True)
class CacheConfig:
    """Result cache settings."""
    ttl_days: int = int(os.getenv('CACHE_TTL_DAYS', '3'))
    prune_every_writes: int = 50  # Batch-delete stale rows this often


@dataclass(frozen=True)
class QuotaConfig:
    """Per-install quota settings."""
    daily_limit: int = int(os.getenv('DAILY_RATE_LIMIT', '20'))


@dataclass(frozen=True)
class ClientConfig:
    """Settings for the lookup client and page fan-out."""
    api_base: str = os.getenv('LOOKUP_API_BASE', 'http://localhost:5000/api')
    timeout_seconds: float = float(os.getenv('CLIENT_TIMEOUT_SECONDS', '20'))
    delay_threshold_minutes: int = int(os.getenv('DELAY_THRESHOLD_MINUTES', '30'))
    # Unset means one worker per detected flight
    max_workers: Optional[int] = (
        int(os.environ['FANOUT_MAX_WORKERS']) if os.getenv('FANOUT_MAX_WORKERS') else None
    )


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    flightaware: FlightAwareConfig
    database: DatabaseConfig
    cache: CacheConfig
    quota: QuotaConfig
    client: ClientConfig

    cors_origins: Tuple[str, ...]

    # Flask settings
    secret_key: str
    debug: bool


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        flightaware=FlightAwareConfig(),
        database=DatabaseConfig(),
        cache=CacheConfig(),
        quota=QuotaConfig(),
        client=ClientConfig(),
        cors_origins=_parse_origins(os.getenv('CORS_ORIGINS', '*')),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )


# Singleton instance
config = load_config()
