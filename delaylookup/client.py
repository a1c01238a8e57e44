"""
HTTP client for the lookup service.

Used by the browser-side collaborator (and scripts) to talk to the
service. Mirrors the extension's local bookkeeping:
- Registers automatically the first time a lookup needs an install id
- Tracks today's usage from the server's usage counters
- Counts cache hits locally

Lookups never raise: failures come back as {'error': ...} so one bad
flight cannot break a page full of lookups.
"""

import logging
import threading
from typing import Any, Dict, Optional

import requests

from delaylookup.config import config

logger = logging.getLogger(__name__)


class LookupClient:
    """Client for POST /register and POST /lookup."""

    def __init__(
        self,
        api_base: Optional[str] = None,
        install_id: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_base = (api_base or config.client.api_base).rstrip('/')
        self.install_id = install_id
        self.timeout = timeout or config.client.timeout_seconds
        self.session = session or requests.Session()

        self.daily_limit: Optional[int] = None
        self.usage_today = 0
        self.cache_hits = 0

        self._lock = threading.Lock()
        self._register_lock = threading.Lock()

    def register(self) -> Optional[str]:
        """
        Register a new install and remember its id.

        Returns the install id, or None if registration failed.
        """
        logger.info('Registering new installation...')
        try:
            response = self.session.post(
                f'{self.api_base}/register',
                json={},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f'Registration error: {e}')
            return None

        if not response.ok:
            logger.warning(f'Registration failed: {response.status_code}')
            return None

        data = response.json()
        with self._lock:
            self.install_id = data['installId']
            self.daily_limit = data.get('dailyLimit')
            self.usage_today = 0
            self.cache_hits = 0
        logger.info(f'Registration successful: {self.install_id}')
        return self.install_id

    def _ensure_registered(self) -> Optional[str]:
        # Concurrent first lookups share a single registration
        with self._register_lock:
            if self.install_id:
                return self.install_id
            logger.info('No install id, registering...')
            return self.register()

    def lookup(
        self,
        flight_number: str,
        origin: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Look up delay statistics for one flight.

        Returns:
            {'stats': ..., 'from_cache': bool} on success,
            {'error': ..., 'stats': None} on a service error, or
            {'error': 'Network error: ...'} if the service is unreachable
        """
        install_id = self._ensure_registered()
        if not install_id:
            return {'error': 'Failed to register'}

        payload = {
            'installId': install_id,
            'flightNumber': ''.join(flight_number.split()),
            'origin': origin,
            'destination': destination,
        }

        try:
            response = self.session.post(
                f'{self.api_base}/lookup',
                json=payload,
                timeout=self.timeout,
            )
            result = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.warning(f'Lookup fetch error for {flight_number}: {e}')
            return {'error': f'Network error: {e}'}

        logger.debug(f'Lookup response {response.status_code} source={result.get("source")}')

        if not response.ok:
            return {'error': result.get('error') or 'API error', 'stats': None}

        from_cache = result.get('source') == 'cache'
        with self._lock:
            if from_cache:
                self.cache_hits += 1
            elif result.get('usage'):
                self.usage_today = result['usage']['today']

        return {'stats': result.get('stats'), 'from_cache': from_cache}

    @property
    def stats(self) -> dict:
        """Local usage counters."""
        with self._lock:
            return {
                'install_id': self.install_id,
                'usage_today': self.usage_today,
                'cache_hits': self.cache_hits,
                'daily_limit': self.daily_limit,
            }
