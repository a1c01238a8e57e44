"""
Flight Delay Lookup Flask Application.

Main entry point for the web service. Initializes:
- Database schema
- Identity and result-cache stores
- FlightAware client
- API routes

Usage:
    python -m delaylookup.app

Or with gunicorn:
    gunicorn "delaylookup.app:create_app()"
"""

import logging
import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from delaylookup.config import config
from delaylookup.models import init_db
from delaylookup.api import lookup_bp, metrics_bp
from delaylookup.cache import SqlResultCache
from delaylookup.identity import SqlIdentityStore
from delaylookup.service import LookupService
from delaylookup.upstream import FlightAwareClient

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if config.debug else logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S',
)
logger = logging.getLogger(__name__)


def build_lookup_service() -> LookupService:
    """Wire the lookup service to the database and FlightAware."""
    return LookupService(
        identities=SqlIdentityStore(),
        cache=SqlResultCache(),
        fetcher=FlightAwareClient.from_config(),
    )


def create_app(
    lookup_service: Optional[LookupService] = None,
    init_database: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        lookup_service: Pre-built service (e.g. with in-memory stores).
                        Built from configuration when None.
        init_database: Whether to create tables on startup.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)

    app.config['SECRET_KEY'] = config.secret_key

    # The browser extension calls from arbitrary page origins
    CORS(app, resources={r'/api/*': {'origins': list(config.cors_origins)}})

    if init_database:
        logger.info('Initializing database...')
        init_db()

    if lookup_service is None:
        lookup_service = build_lookup_service()

    app.config['LOOKUP_SERVICE'] = lookup_service
    app.config['CHECK_DATABASE'] = init_database

    app.register_blueprint(lookup_bp)
    app.register_blueprint(metrics_bp)

    if not lookup_service.fetcher.is_configured:
        logger.warning('No FlightAware API key configured. Set FLIGHTAWARE_API_KEY in .env')

    @app.route('/health')
    def health():
        """Simple health check endpoint."""
        return {'status': 'ok'}

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {'error': 'Not found'}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {'error': 'Method not allowed'}, 405

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {'error': 'Internal server error'}, 500

    return app


def run_development_server():
    """Run the development server."""
    app = create_app()

    port = int(os.environ.get('PORT', 5000))

    logger.info(f'Starting delay lookup service on http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=config.debug,
    )


if __name__ == '__main__':
    run_development_server()
