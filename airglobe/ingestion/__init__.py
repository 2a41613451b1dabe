"""
Data ingestion module for AirGlobe.

Handles fetching OpenSky state vectors, OAuth2 authentication, and
parsing the raw arrays into typed records.
"""

from airglobe.ingestion.auth import AccessToken, Credentials, TokenProvider
from airglobe.ingestion.opensky_client import OpenSkyClient
from airglobe.ingestion.state_vectors import (
    AircraftRecord,
    is_valid_position,
    parse_state_vector,
    parse_state_vectors,
)

__all__ = [
    'AccessToken',
    'AircraftRecord',
    'Credentials',
    'OpenSkyClient',
    'TokenProvider',
    'is_valid_position',
    'parse_state_vector',
    'parse_state_vectors',
]
