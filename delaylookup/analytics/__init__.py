"""
Analytics module for the delay lookup service.

Reduces recent flight history to a small delay summary using NumPy:
- Average, minimum and maximum arrival delay
- Interquartile bounds (p25/p75)
- Cancellation count
"""

from delaylookup.analytics.delay_stats import (
    compute_delay_stats,
    is_delayed,
    round_half_away,
    DelaySummary,
    InsufficientData,
    StatResult,
)

__all__ = [
    'compute_delay_stats',
    'is_delayed',
    'round_half_away',
    'DelaySummary',
    'InsufficientData',
    'StatResult',
]
