"""
Lookup API endpoints.

Provides endpoints for:
- POST /api/register - Issue a new install id
- POST /api/lookup - Get delay statistics for a flight

Both endpoints speak JSON. Failures carry an 'error' message and a
stable 'code' from ErrorKind.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from delaylookup.errors import FlightLookupError

logger = logging.getLogger(__name__)

lookup_bp = Blueprint('lookup', __name__, url_prefix='/api')


def _service():
    return current_app.config['LOOKUP_SERVICE']


@lookup_bp.errorhandler(FlightLookupError)
def handle_lookup_error(e: FlightLookupError):
    if e.status_code >= 500:
        logger.error(f'Lookup failed ({e.kind.value}): {e.message} {e.extra}')
    return jsonify(e.to_dict()), e.status_code


@lookup_bp.route('/register', methods=['POST'])
def register():
    """
    Create a new install identity.

    No input. Every call creates a distinct identity; clients are
    expected to call this once per install.
    """
    service = _service()
    identity = service.register()
    return jsonify({
        'installId': identity.id,
        'dailyLimit': service.daily_limit,
    })


@lookup_bp.route('/lookup', methods=['POST'])
def lookup():
    """
    Get delay statistics for a flight.

    Body:
    - installId: string, from /register
    - flightNumber: string, e.g. "DL 1234"
    - origin, destination: optional airport codes (informational)

    Response:
    - source: "cache" or "api"
    - stats: delay summary or insufficient-data result
    - usage: {today, limit} on quota-enforced upstream lookups
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}

    result = _service().lookup(
        body.get('installId'),
        body.get('flightNumber'),
        origin=body.get('origin'),
        destination=body.get('destination'),
    )
    return jsonify(result.to_dict())
