"""
Page-level fan-out of flight lookups.

When a page shows several flights, every one of them is looked up at
once and the results are folded into a single "any delayed" signal for
the toolbar badge. Lookups are independent: one failing or slow flight
never cancels or blocks the others, and each result is reported through
on_result as soon as it settles.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from delaylookup.analytics import is_delayed
from delaylookup.config import config

logger = logging.getLogger(__name__)

# (flight_number, origin, destination) -> {'stats': ...} or {'error': ...}
LookupFn = Callable[[str, Optional[str], Optional[str]], Dict[str, Any]]


@dataclass(frozen=True)
class DetectedFlight:
    """A flight found on a page, already de-duplicated by the detector."""
    carrier: str
    number: str
    origin: Optional[str] = None
    destination: Optional[str] = None

    @property
    def flight_number(self) -> str:
        return f'{self.carrier}{self.number}'


@dataclass
class FanOutResult:
    """Every flight's outcome plus the aggregate badge signals."""
    results: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    has_delayed: bool = False
    has_any_data: bool = False


class FanOutCoordinator:
    """
    Runs one lookup per detected flight concurrently.

    lookup_fn is usually LookupClient.lookup, but any callable with the
    same shape works (e.g. a wrapper around LookupService in-process).

    By default every flight gets its own worker so a slow lookup never
    queues the rest; max_workers caps that only when set explicitly.
    """

    def __init__(
        self,
        lookup_fn: LookupFn,
        max_workers: Optional[int] = None,
        delay_threshold: Optional[int] = None,
    ):
        self.lookup_fn = lookup_fn
        self.max_workers = max_workers or config.client.max_workers
        self.delay_threshold = (
            delay_threshold if delay_threshold is not None
            else config.client.delay_threshold_minutes
        )

    def _lookup_one(self, flight: DetectedFlight, route: Dict[str, Optional[str]]) -> Dict[str, Any]:
        origin = route.get('origin') or flight.origin
        destination = route.get('destination') or flight.destination
        try:
            return self.lookup_fn(flight.flight_number, origin, destination)
        except Exception as e:
            logger.warning(f'Error fetching {flight.flight_number}: {e}')
            return {'error': str(e)}

    def run(
        self,
        flights: List[DetectedFlight],
        route: Optional[Dict[str, Optional[str]]] = None,
        on_result: Optional[Callable[[str, Dict[str, Any]], None]] = None,
    ) -> FanOutResult:
        """
        Look up all flights and wait for every one to settle.

        Args:
            flights: Flights detected on the page
            route: Page-level origin/destination overriding each flight's own
            on_result: Called with (flight_number, result) as each settles

        Returns:
            FanOutResult with per-flight results and aggregate flags
        """
        outcome = FanOutResult()
        if not flights:
            return outcome

        route = route or {}
        workers = len(flights)
        if self.max_workers:
            workers = min(self.max_workers, workers)

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._lookup_one, flight, route): flight.flight_number
                for flight in flights
            }
            for future in as_completed(futures):
                flight_number = futures[future]
                result = future.result()
                outcome.results[flight_number] = result

                stats = result.get('stats')
                if stats and not stats.get('error'):
                    outcome.has_any_data = True
                    if is_delayed(stats, self.delay_threshold):
                        outcome.has_delayed = True

                if on_result is not None:
                    try:
                        on_result(flight_number, result)
                    except Exception as e:
                        logger.error(f'Result callback error: {e}')

        logger.info(
            f'All lookups complete: {len(outcome.results)} flights, '
            f'delayed={outcome.has_delayed} data={outcome.has_any_data}'
        )
        return outcome
