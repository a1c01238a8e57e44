"""
FlightAware AeroAPI history client.

Fetches the last week of completed flights for a flight number from
GET /history/flights/{ident}?start=YYYY-MM-DD&end=YYYY-MM-DD, including:
- Carrier-code fallback (ICAO spelling first, then IATA)
- Classification of upstream failures into terminal error kinds
- Short-circuit on the first spelling that returns any history

AeroAPI flight record fields used here:
    ident          - Flight identifier as FlightAware knows it
    cancelled      - Boolean
    arrival_delay  - Seconds late at the gate (negative = early, may be null)
    origin/destination.code_iata - Airport codes (informational)
    scheduled_in   - Scheduled gate arrival (ISO 8601)
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import requests

from delaylookup.config import config
from delaylookup.errors import (
    InvalidFormat,
    UpstreamInvalidCredentials,
    UpstreamRateLimited,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)

FLIGHT_NUMBER_PATTERN = re.compile(r'^([A-Z]{2})(\d+)$')

# IATA carrier code -> ICAO operator code, for carriers AeroAPI indexes by ICAO
IATA_TO_ICAO = {
    'AA': 'AAL',
    'AS': 'ASA',
    'B6': 'JBU',
    'DL': 'DAL',
    'F9': 'FFT',
    'G4': 'AAY',
    'HA': 'HAL',
    'NK': 'NKS',
    'UA': 'UAL',
    'WN': 'SWA',
    'SY': 'SCX',
}


@dataclass
class HistoricalFlight:
    """
    One past operation of a flight, as reported upstream.

    Only cancelled and arrival_delay feed the statistics; the rest is
    kept for logging and display.
    """
    cancelled: bool
    arrival_delay: int  # seconds, negative = early
    ident: Optional[str] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    scheduled_in: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HistoricalFlight':
        """Parse an AeroAPI flight object. Missing delay counts as on time."""
        return cls(
            cancelled=bool(data.get('cancelled')),
            arrival_delay=int(data.get('arrival_delay') or 0),
            ident=data.get('ident'),
            origin=_airport_code(data.get('origin')),
            destination=_airport_code(data.get('destination')),
            scheduled_in=data.get('scheduled_in'),
        )


def _airport_code(airport: Any) -> Optional[str]:
    if not isinstance(airport, dict):
        return None
    return airport.get('code_iata') or airport.get('code')


def split_flight_number(flight_number: str) -> Tuple[str, str]:
    """
    Split a normalized flight number into (carrier, number).

    Raises:
        InvalidFormat: if it is not two letters followed by digits
    """
    match = FLIGHT_NUMBER_PATTERN.match(flight_number)
    if not match:
        raise InvalidFormat('Invalid flight number format', flightNumber=flight_number)
    return match.group(1), match.group(2)


def candidate_identifiers(flight_number: str) -> Iterator[str]:
    """
    Identifier spellings to try upstream, most likely first.

    Carriers with a known ICAO code are tried as e.g. DAL1234 before
    DL1234; all others only in their original spelling.
    """
    carrier, number = split_flight_number(flight_number)
    icao = IATA_TO_ICAO.get(carrier)
    if icao:
        yield f'{icao}{number}'
    yield f'{carrier}{number}'


class FlightAwareClient:
    """
    Client for the AeroAPI flight history endpoint.

    Handles:
    - API key authentication via the x-apikey header
    - Trailing date window (7 days by default)
    - Identifier fallback across carrier spellings
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = 'https://aeroapi.flightaware.com/aeroapi',
        timeout: float = 15,
        window_days: int = 7,
        session: Optional[requests.Session] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.window_days = window_days
        self.session = session or requests.Session()
        self._today = today or (lambda: datetime.now(timezone.utc).date())

        if not self.api_key:
            logger.warning('FlightAware API key not configured - upstream lookups disabled')

    @classmethod
    def from_config(cls) -> 'FlightAwareClient':
        """Create client from application configuration."""
        return cls(
            api_key=config.flightaware.api_key,
            base_url=config.flightaware.base_url,
            timeout=config.flightaware.timeout_seconds,
            window_days=config.flightaware.history_window_days,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def date_window(self) -> Tuple[str, str]:
        """(start, end) dates for the trailing history window."""
        end = self._today()
        start = end - timedelta(days=self.window_days)
        return start.isoformat(), end.isoformat()

    def fetch_history(self, flight_number: str) -> List[HistoricalFlight]:
        """
        Fetch recent history for a normalized flight number.

        Candidate spellings are consumed lazily; the first one that
        yields any records wins and the rest are never requested.

        Returns:
            Flight records, most recent first. Empty if no spelling had
            history, which is a legitimate outcome and not an error.

        Raises:
            InvalidFormat: malformed flight number (no request is made)
            UpstreamInvalidCredentials: HTTP 401
            UpstreamRateLimited: HTTP 429
            UpstreamUnavailable: network failure or unreadable body
        """
        candidates = candidate_identifiers(flight_number)
        start, end = self.date_window()

        results = (self._query_history(ident, start, end) for ident in candidates)
        flights = next((found for found in results if found), [])

        if not flights:
            logger.info(f'No history found for {flight_number}')
        return flights

    def _query_history(self, ident: str, start: str, end: str) -> List[HistoricalFlight]:
        """
        One history request for one identifier spelling.

        404 and other non-success statuses mean "wrong spelling" and
        return an empty list so the next candidate is tried.
        """
        url = f'{self.base_url}/history/flights/{ident}'
        params = {'start': start, 'end': end}
        headers = {'x-apikey': self.api_key or '', 'Accept': 'application/json'}

        logger.debug(f'Fetching history: {url} params={params}')

        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout:
            logger.error(f'FlightAware API timeout for {ident}')
            raise UpstreamUnavailable('Failed to fetch flight data', details='FlightAware API timeout')
        except requests.exceptions.RequestException as e:
            logger.error(f'FlightAware request failed: {e}')
            raise UpstreamUnavailable('Failed to fetch flight data', details=str(e))

        logger.info(f'FlightAware response for {ident}: {response.status_code}')

        if response.status_code == 401:
            raise UpstreamInvalidCredentials(
                'Failed to fetch flight data', details='Invalid FlightAware API key'
            )

        if response.status_code == 429:
            logger.warning('FlightAware rate limit exceeded')
            raise UpstreamRateLimited(
                'Failed to fetch flight data', details='FlightAware rate limit exceeded'
            )

        if not response.ok:
            # 404 or anything else: assume this spelling is wrong
            return []

        try:
            data = response.json()
        except ValueError:
            logger.error(f'Unreadable FlightAware response for {ident}')
            raise UpstreamUnavailable('Failed to fetch flight data', details='Unreadable FlightAware response')

        raw_flights = data.get('flights') if isinstance(data, dict) else None
        raw_flights = raw_flights or []
        flights = [HistoricalFlight.from_dict(f) for f in raw_flights if isinstance(f, dict)]

        if flights:
            logger.info(f'Found {len(flights)} flights for {ident}')
        return flights
