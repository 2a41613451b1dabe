"""Shared fixtures for AirGlobe tests."""

import json
from unittest.mock import Mock

import pytest
import requests

from airglobe.app import create_app
from airglobe.cache import ResponseCache
from airglobe.config import AppConfig, CacheConfig
from airglobe.ingestion import OpenSkyClient


class FakeClock:
    """Manually advanced clock for TTL and token expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_state_vector(**overrides):
    """Build a fully populated OpenSky state vector (17 fields)."""
    fields = {
        'icao24': 'abc123',
        'callsign': 'BAW123  ',
        'origin_country': 'United Kingdom',
        'time_position': 1714765198,
        'last_contact': 1714765200,
        'longitude': -0.1278,
        'latitude': 51.5074,
        'baro_altitude': 10058.4,
        'on_ground': False,
        'velocity': 231.5,
        'true_track': 87.3,
        'vertical_rate': -1.3,
        'sensors': [1234, 5678],
        'geo_altitude': 10363.2,
        'squawk': '4621',
        'spi': False,
        'position_source': 0,
    }
    fields.update(overrides)
    return list(fields.values())


def make_response(status_code=200, json_body=None, text=None):
    """Build a real requests.Response with the given body."""
    response = requests.Response()
    response.status_code = status_code
    response.encoding = 'utf-8'
    if json_body is not None:
        response._content = json.dumps(json_body).encode('utf-8')
        response.headers['Content-Type'] = 'application/json'
    else:
        response._content = (text or '').encode('utf-8')
    return response


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    return Mock(spec=requests.Session)


@pytest.fixture
def telemetry_client():
    client = Mock(spec=OpenSkyClient)
    client.fetch_states.return_value = []
    return client


@pytest.fixture
def response_cache(clock):
    return ResponseCache(max_size=100, clock=clock)


@pytest.fixture
def app(telemetry_client, response_cache):
    config = AppConfig(cache=CacheConfig(ttl_seconds=15.0))
    app = create_app(
        config=config,
        client=telemetry_client,
        cache=response_cache,
        start_sweeper=False,
    )
    app.config['TESTING'] = True
    return app


@pytest.fixture
def http(app):
    return app.test_client()
