"""
Delay statistics over recent flight history using NumPy.

Turns the last week of upstream flight records into a compact summary:

1. Cancelled flights are counted, not averaged
2. At least 3 completed flights are required for a summary
3. Only the 10 most recent completed flights are used (upstream order
   is most-recent-first and is not re-sorted here)
4. Percentiles use linear interpolation between order statistics,
   the same rule as numpy.percentile's default method

All reported values are whole minutes, rounded half away from zero so
early arrivals round symmetrically with late ones.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Union

import numpy as np

from delaylookup.upstream.flightaware_client import HistoricalFlight

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 3
MAX_SAMPLE_SIZE = 10


def round_half_away(value: float) -> int:
    """Round to the nearest integer, ties away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class InsufficientData:
    """Too few usable records for a summary. A valid, cacheable outcome."""
    reason: str
    sample_size: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'error': self.reason, 'insufficient_data': True}
        if self.sample_size is not None:
            result['sample_size'] = self.sample_size
        return result


@dataclass(frozen=True)
class DelaySummary:
    """Arrival delay summary in minutes (negative = early)."""
    sample_size: int
    avg_delay: int
    min_delay: int
    max_delay: int
    p25: int
    p75: int
    cancelled_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sample_size': self.sample_size,
            'avg_delay': self.avg_delay,
            'max_delay': self.max_delay,
            'min_delay': self.min_delay,
            'p25': self.p25,
            'p75': self.p75,
            'cancelled_count': self.cancelled_count,
        }


StatResult = Union[InsufficientData, DelaySummary]


def is_delayed(stats: Optional[Dict[str, Any]], threshold_minutes: int) -> bool:
    """Whether a stats dict describes a flight that is usually late."""
    if not stats or stats.get('error') or stats.get('avg_delay') is None:
        return False
    return stats['avg_delay'] >= threshold_minutes


def compute_delay_stats(records: Sequence[HistoricalFlight]) -> StatResult:
    """
    Summarize arrival delays for a list of historical flights.

    Args:
        records: Flight records as returned upstream, most recent first

    Returns:
        DelaySummary, or InsufficientData if there is too little history
    """
    if not records:
        return InsufficientData(reason='No flight data available')

    completed: List[HistoricalFlight] = [r for r in records if not r.cancelled]
    cancelled_count = len(records) - len(completed)

    if len(completed) < MIN_SAMPLE_SIZE:
        return InsufficientData(
            reason=f'Insufficient data (only {len(completed)} flights)',
            sample_size=len(completed),
        )

    delays = np.array(
        [r.arrival_delay for r in completed[:MAX_SAMPLE_SIZE]],
        dtype=float,
    ) / 60.0

    p25, p75 = np.percentile(delays, [25, 75])

    summary = DelaySummary(
        sample_size=int(delays.size),
        avg_delay=round_half_away(float(np.mean(delays))),
        min_delay=round_half_away(float(np.min(delays))),
        max_delay=round_half_away(float(np.max(delays))),
        p25=round_half_away(float(p25)),
        p75=round_half_away(float(p75)),
        cancelled_count=cancelled_count,
    )
    logger.debug(f'Computed delay stats over {summary.sample_size} flights: avg={summary.avg_delay}m')
    return summary
