"""
AirGlobe Flask Application.

Main entry point for the web application. Initializes:
- OpenSky client and OAuth2 token provider
- Response cache and its background sweeper
- API routes

Usage:
    python -m airglobe.app

Or with gunicorn:
    gunicorn 'airglobe.app:create_app()'
"""

import logging
import time
from typing import Optional

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from airglobe import __version__
from airglobe.api import aircraft_bp
from airglobe.cache import ResponseCache
from airglobe.config import AppConfig, load_config
from airglobe.ingestion import OpenSkyClient

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def create_app(
    config: Optional[AppConfig] = None,
    client: Optional[OpenSkyClient] = None,
    cache: Optional[ResponseCache] = None,
    start_sweeper: bool = True,
) -> Flask:
    """
    Application factory for Flask.

    Args:
        config: Application configuration (loaded from environment if None)
        client: OpenSky client (built from config if None)
        cache: Response cache (built from config if None)
        start_sweeper: Whether to start the background cache sweep.
                       Set to False for testing.

    Returns:
        Configured Flask application instance.
    """
    config = config or load_config()
    configure_logging(config.debug)

    app = Flask(__name__)
    app.config['DEBUG'] = config.debug

    # Enable CORS for API endpoints
    CORS(app, resources={r'/api/*': {'origins': '*'}})

    if client is None:
        client = OpenSkyClient.from_config(config.opensky)

    if cache is None:
        cache = ResponseCache(
            max_size=config.cache.max_size,
            enabled=config.cache.enabled,
            sweep_interval=config.cache.sweep_interval_seconds,
        )

    app.config['APP_CONFIG'] = config
    app.config['TELEMETRY_CLIENT'] = client
    app.config['RESPONSE_CACHE'] = cache
    app.config['CACHE_TTL_SECONDS'] = config.cache.ttl_seconds

    if start_sweeper:
        cache.start_sweeper()

    logger.info(
        f'Cache {"enabled" if cache.enabled else "disabled"} '
        f'(ttl={config.cache.ttl_seconds}s, max_size={cache.max_size})'
    )

    app.register_blueprint(aircraft_bp)

    # -------------------------------------------------------------------------
    # Request logging
    # -------------------------------------------------------------------------

    @app.before_request
    def start_timer():
        g.start_time = time.perf_counter()

    @app.after_request
    def log_request(response):
        duration_ms = (time.perf_counter() - g.get('start_time', time.perf_counter())) * 1000
        logger.info(
            f'HTTP {request.method} {request.path} -> {response.status_code} '
            f'({duration_ms:.2f} ms)'
        )
        return response

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------

    @app.route('/')
    def index():
        """API information."""
        return jsonify({
            'message': 'AirGlobe - OpenSky API Integration',
            'version': __version__,
            'endpoints': {
                'aircraft': '/api/aircraft',
                'health': '/api/aircraft/health',
            },
        })

    # -------------------------------------------------------------------------
    # Error handlers
    # -------------------------------------------------------------------------

    @app.errorhandler(404)
    def not_found(e):
        return {
            'error': 'Not Found',
            'message': f'The requested endpoint {request.path} was not found.',
        }, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error(f'Server error: {e}')
        return {
            'error': 'Internal Server Error',
            'message': str(e) if config.debug else 'An unexpected error occurred',
        }, 500

    return app


def run_development_server():
    """Run the development server."""
    config = load_config()
    app = create_app(config)

    logger.info(f'Starting AirGlobe on http://{config.server.host}:{config.server.port}')
    logger.info(f'Aircraft API: http://{config.server.host}:{config.server.port}/api/aircraft')

    try:
        app.run(
            host=config.server.host,
            port=config.server.port,
            debug=config.debug,
            threaded=True,
            use_reloader=False,  # Reloader would start a second sweeper thread
        )
    finally:
        app.config['RESPONSE_CACHE'].stop_sweeper()


if __name__ == '__main__':
    run_development_server()
