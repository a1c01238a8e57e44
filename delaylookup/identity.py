"""
Install identities and per-day quota bookkeeping.

Each extension install registers once and presents its install id on
every lookup. Usage is counted per UTC calendar day with a lazy reset:
nothing ever zeroes the counter on a schedule. Instead the stored
(usage_day, usage_today) pair is reconciled against the current date
whenever it is read, and the reset is only written the next time usage
is recorded.
"""

import logging
import secrets
import string
import threading
from dataclasses import dataclass, replace
from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional, Protocol

from sqlalchemy import case, update
from sqlalchemy.orm import sessionmaker

from delaylookup.models import InstallToken, SessionLocal, get_session, utc_now, as_utc

logger = logging.getLogger(__name__)

INSTALL_ID_PREFIX = 'ext_'
INSTALL_ID_LENGTH = 16
_ID_ALPHABET = string.ascii_lowercase + string.digits


class Tier(str, Enum):
    """Quota class attached to an identity."""
    FREE = 'free'
    UNLIMITED = 'unlimited'

    @property
    def is_quota_enforced(self) -> bool:
        return self is Tier.FREE


def generate_install_id() -> str:
    """
    Generate a fresh install id.

    16 characters from a 36-symbol alphabet is ~82 bits of entropy,
    drawn from the OS CSPRNG so ids cannot be guessed.
    """
    suffix = ''.join(secrets.choice(_ID_ALPHABET) for _ in range(INSTALL_ID_LENGTH))
    return INSTALL_ID_PREFIX + suffix


@dataclass(frozen=True)
class Identity:
    """Snapshot of an install's identity record."""
    id: str
    created_at: datetime
    last_used_at: Optional[datetime]
    usage_today: int
    usage_day: date
    total_usage: int
    tier: Tier = Tier.FREE

    def usage_on(self, day: date) -> int:
        """
        Effective usage count for the given day.

        A counter stored for any other day is stale and reads as zero.
        """
        if self.usage_day != day:
            return 0
        return self.usage_today

    def with_usage_recorded(self, day: date, now: datetime) -> 'Identity':
        """Identity after one more unit of usage on the given day."""
        return replace(
            self,
            usage_today=self.usage_on(day) + 1,
            usage_day=day,
            total_usage=self.total_usage + 1,
            last_used_at=now,
        )

    @classmethod
    def new(cls, now: datetime, tier: Tier = Tier.FREE) -> 'Identity':
        return cls(
            id=generate_install_id(),
            created_at=now,
            last_used_at=now,
            usage_today=0,
            usage_day=now.date(),
            total_usage=0,
            tier=tier,
        )


class IdentityStore(Protocol):
    """Anything that can create, load, and charge identities."""

    def create(self, tier: Tier = Tier.FREE) -> Identity: ...

    def get(self, install_id: str) -> Optional[Identity]: ...

    def record_usage(self, install_id: str, day: date, now: Optional[datetime] = None) -> Optional[Identity]: ...


def _to_identity(row: InstallToken) -> Identity:
    return Identity(
        id=row.id,
        created_at=as_utc(row.created_at),
        last_used_at=as_utc(row.last_used_at),
        usage_today=row.usage_today,
        usage_day=row.usage_date,
        total_usage=row.total_usage,
        tier=Tier(row.tier),
    )


class SqlIdentityStore:
    """Identity store backed by the install_tokens table."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self._session_factory = session_factory

    def create(self, tier: Tier = Tier.FREE) -> Identity:
        identity = Identity.new(utc_now(), tier)
        with get_session(self._session_factory) as session:
            session.add(InstallToken(
                id=identity.id,
                created_at=identity.created_at,
                last_used_at=identity.last_used_at,
                usage_today=identity.usage_today,
                usage_date=identity.usage_day,
                total_usage=identity.total_usage,
                tier=identity.tier.value,
            ))
        logger.info(f'Registered new install: {identity.id}')
        return identity

    def get(self, install_id: str) -> Optional[Identity]:
        with self._session_factory() as session:
            row = session.get(InstallToken, install_id)
            if row is None:
                return None
            return _to_identity(row)

    def record_usage(self, install_id: str, day: date, now: Optional[datetime] = None) -> Optional[Identity]:
        """
        Charge one lookup to an install.

        Day reconciliation happens inside a single UPDATE so concurrent
        requests for the same install never lose an increment and never
        add onto a previous day's counter.

        Returns the updated identity, or None if the install is unknown.
        """
        now = now or utc_now()
        stmt = (
            update(InstallToken)
            .where(InstallToken.id == install_id)
            .values(
                usage_today=case(
                    (InstallToken.usage_date == day, InstallToken.usage_today + 1),
                    else_=1,
                ),
                usage_date=day,
                total_usage=InstallToken.total_usage + 1,
                last_used_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        with get_session(self._session_factory) as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                logger.warning(f'Usage recorded for unknown install {install_id}')
                return None
            row = session.get(InstallToken, install_id, populate_existing=True)
            return _to_identity(row)


class InMemoryIdentityStore:
    """Thread-safe in-process identity store."""

    def __init__(self):
        self._identities: Dict[str, Identity] = {}
        self._lock = threading.RLock()

    def create(self, tier: Tier = Tier.FREE) -> Identity:
        identity = Identity.new(utc_now(), tier)
        with self._lock:
            self._identities[identity.id] = identity
        logger.info(f'Registered new install: {identity.id}')
        return identity

    def add(self, identity: Identity) -> None:
        """Insert or replace an identity verbatim."""
        with self._lock:
            self._identities[identity.id] = identity

    def get(self, install_id: str) -> Optional[Identity]:
        with self._lock:
            return self._identities.get(install_id)

    def record_usage(self, install_id: str, day: date, now: Optional[datetime] = None) -> Optional[Identity]:
        with self._lock:
            identity = self._identities.get(install_id)
            if identity is None:
                return None
            updated = identity.with_usage_recorded(day, now or utc_now())
            self._identities[install_id] = updated
            return updated
