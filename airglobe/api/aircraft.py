"""
Aircraft data API endpoints.

Provides endpoints for:
- GET /api/aircraft - Live aircraft states, optionally within a bounding box
- GET /api/aircraft/health - Health check

Bounding box query parameters (all four or none):
- lamin, lamax: latitude bounds, -90..90, lamin <= lamax
- lomin, lomax: longitude bounds, -180..180, lomin <= lomax

A partial or invalid box is not rejected: the request silently falls back
to the worldwide query. Existing clients rely on this, so it stays until
the API is versioned.
"""

import logging
import math
import time
from typing import Mapping, Optional

from flask import Blueprint, current_app, jsonify, request

from airglobe.exceptions import GeometryError, UpstreamTimeoutError
from airglobe.geo import BoundingBox, format_coordinate

logger = logging.getLogger(__name__)

aircraft_bp = Blueprint('aircraft', __name__, url_prefix='/api/aircraft')

FETCH_ERROR_MESSAGE = 'Failed to fetch aircraft data from OpenSky API'


def _epoch_ms() -> int:
    return int(time.time() * 1000)


def _parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a query value as a finite float, or None."""
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_bounding_box(args: Mapping[str, str]) -> Optional[BoundingBox]:
    """
    Parse bounding box parameters from a query string.

    Returns None (worldwide) when any parameter is missing, not a number,
    or the resulting box is out of range or inverted.
    """
    values = [_parse_float(args.get(name)) for name in ('lamin', 'lamax', 'lomin', 'lomax')]
    if any(v is None for v in values):
        return None

    try:
        return BoundingBox(*values)
    except GeometryError as e:
        logger.debug(f'Ignoring invalid bounding box: {e}')
        return None


def build_cache_key(bbox: Optional[BoundingBox]) -> str:
    """Cache key for a query shape."""
    if bbox is None:
        return 'aircraft:all'
    bounds = (bbox.lat_min, bbox.lat_max, bbox.lon_min, bbox.lon_max)
    # "lamin=50" and "lamin=50.0" share a cache slot
    return 'aircraft:' + ','.join(format_coordinate(v) for v in bounds)


@aircraft_bp.route('', methods=['GET'])
def list_aircraft():
    """
    Fetch live aircraft states from OpenSky (through the response cache).

    Response:
    - 200: {success, count, data, timestamp}
    - 500: {success, error, message, timestamp}
    """
    client = current_app.config['TELEMETRY_CLIENT']
    cache = current_app.config['RESPONSE_CACHE']
    ttl = current_app.config['CACHE_TTL_SECONDS']

    bbox = parse_bounding_box(request.args)
    cache_key = build_cache_key(bbox)

    try:
        aircraft = cache.get_or_set(
            cache_key,
            lambda: client.fetch_states(bbox=bbox),
            ttl,
        )
    except UpstreamTimeoutError as e:
        logger.warning(f'Aircraft query {cache_key} timed out: {e}')
        return _error_response(e)
    except Exception as e:
        logger.error(f'Error fetching aircraft data for {cache_key}: {e}')
        return _error_response(e)

    return jsonify({
        'success': True,
        'count': len(aircraft),
        'data': [a.to_dict() for a in aircraft],
        'timestamp': _epoch_ms(),
    })


def _error_response(error: Exception):
    return jsonify({
        'success': False,
        'error': FETCH_ERROR_MESSAGE,
        'message': str(error) or 'Unknown error occurred',
        'timestamp': _epoch_ms(),
    }), 500


@aircraft_bp.route('/health', methods=['GET'])
def health():
    """Health check endpoint for the aircraft API."""
    return jsonify({
        'status': 'healthy',
        'service': 'aircraft-api',
        'timestamp': _epoch_ms(),
    })
