"""
Error taxonomy for flight lookups.

Every failure a caller can see carries a stable machine-readable kind,
an HTTP status, and a human-readable message. None of these are retried
inside the service.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorKind(str, Enum):
    """Machine-readable error codes returned to callers."""
    INVALID_FORMAT = 'invalid_format'
    MISSING_FIELDS = 'missing_fields'
    INVALID_IDENTITY = 'invalid_identity'
    QUOTA_EXCEEDED = 'quota_exceeded'
    UPSTREAM_INVALID_CREDENTIALS = 'upstream_invalid_credentials'
    UPSTREAM_RATE_LIMITED = 'upstream_rate_limited'
    UPSTREAM_UNAVAILABLE = 'upstream_unavailable'
    SERVER_MISCONFIGURED = 'server_misconfigured'


class FlightLookupError(Exception):
    """Base class for all lookup failures."""

    kind: ErrorKind = ErrorKind.UPSTREAM_UNAVAILABLE
    status_code: int = 500

    def __init__(self, message: str, **extra: Any):
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        """Response body for this error."""
        body = {'error': self.message, 'code': self.kind.value}
        body.update(self.extra)
        return body


class InvalidFormat(FlightLookupError):
    kind = ErrorKind.INVALID_FORMAT
    status_code = 400


class MissingFields(FlightLookupError):
    kind = ErrorKind.MISSING_FIELDS
    status_code = 400

    def __init__(self, required: List[str], message: str = 'Missing required fields'):
        super().__init__(message, required=list(required))


class InvalidIdentity(FlightLookupError):
    kind = ErrorKind.INVALID_IDENTITY
    status_code = 401

    def __init__(self, message: str = 'Invalid install token'):
        super().__init__(message)


class QuotaExceeded(FlightLookupError):
    kind = ErrorKind.QUOTA_EXCEEDED
    status_code = 429

    def __init__(self, limit: int, message: str = 'Daily limit reached'):
        super().__init__(message, limit=limit, resetsAt='midnight UTC')
        self.limit = limit


class ServerMisconfigured(FlightLookupError):
    kind = ErrorKind.SERVER_MISCONFIGURED
    status_code = 500

    def __init__(self, message: str = 'Server configuration error'):
        super().__init__(message)


class UpstreamError(FlightLookupError):
    """The history provider failed; nothing was cached or counted."""
    status_code = 502

    def __init__(self, message: str, details: Optional[str] = None):
        if details:
            super().__init__(message, details=details)
        else:
            super().__init__(message)


class UpstreamInvalidCredentials(UpstreamError):
    kind = ErrorKind.UPSTREAM_INVALID_CREDENTIALS


class UpstreamRateLimited(UpstreamError):
    kind = ErrorKind.UPSTREAM_RATE_LIMITED


class UpstreamUnavailable(UpstreamError):
    kind = ErrorKind.UPSTREAM_UNAVAILABLE
