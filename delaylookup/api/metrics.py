"""
Metrics API endpoints.

Provides endpoints for:
- GET /api/metrics/status - System status and health
"""

import logging
import time
from datetime import datetime, timezone

from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from delaylookup.models import SessionLocal

logger = logging.getLogger(__name__)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/metrics')


@metrics_bp.route('/status', methods=['GET'])
def get_system_status():
    """
    Get system health and status information.

    Returns:
    - Database connectivity
    - Cache statistics
    - Upstream and quota configuration
    """
    start_time = time.perf_counter()
    service = current_app.config['LOOKUP_SERVICE']

    db_ok = True
    if current_app.config.get('CHECK_DATABASE', True):
        try:
            with SessionLocal() as session:
                session.execute(text('SELECT 1'))
        except Exception as e:
            db_ok = False
            logger.error(f'Database health check failed: {e}')

    cache_stats = dict(service.cache.stats)
    cache_stats['entries'] = service.cache.count()

    query_time_ms = (time.perf_counter() - start_time) * 1000

    return jsonify({
        'database': {'connected': db_ok},
        'cache': cache_stats,
        'upstream': {'configured': service.fetcher.is_configured},
        'config': {
            'daily_limit': service.daily_limit,
            'cache_ttl_days': service.cache_ttl.days,
        },
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'query_time_ms': round(query_time_ms, 2),
    })
