"""
AirGlobe Backend Package.

Live aircraft telemetry for the globe view, built with Flask, requests
and NumPy.

Modules:
    api/         REST endpoints for aircraft data and health
    ingestion/   OpenSky client, OAuth2 token provider, state vector parser
    cache.py     Thread-safe TTL response cache shielding OpenSky from load
    geo.py       Bounding boxes, point-in-box and great-circle helpers
    config.py    Centralized configuration from environment variables
"""

__version__ = '1.0.0'
