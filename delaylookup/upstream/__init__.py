"""
Upstream data sources for the delay lookup service.

Talks to FlightAware AeroAPI for recent flight history, trying carrier
spellings in order and classifying provider failures.
"""

from delaylookup.upstream.flightaware_client import (
    FlightAwareClient,
    HistoricalFlight,
    IATA_TO_ICAO,
    candidate_identifiers,
    split_flight_number,
)

__all__ = [
    'FlightAwareClient',
    'HistoricalFlight',
    'IATA_TO_ICAO',
    'candidate_identifiers',
    'split_flight_number',
]
