"""
Configuration management for AirGlobe.

Loads settings from environment variables (and an optional
credentials.json) with sensible defaults. The rest of the package only
sees the resulting AppConfig; nothing else reads the environment.

OpenSky credentials are looked up in this order:
1. credentials.json (path from OPENSKY_CREDENTIALS_FILE):
   {"opensky": {"clientId": "...", "clientSecret": "..."}}   (OAuth2, preferred)
   {"opensky": {"username": "...", "password": "..."}}       (basic auth, legacy)
2. OPENSKY_CLIENT_ID / OPENSKY_CLIENT_SECRET / OPENSKY_USERNAME / OPENSKY_PASSWORD
"""

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from airglobe.ingestion.auth import DEFAULT_TOKEN_URL, Credentials

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenSkyConfig:
    """OpenSky API configuration."""
    username: Optional[str] = None
    password: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    base_url: str = 'https://opensky-network.org/api'
    token_url: str = DEFAULT_TOKEN_URL
    timeout_seconds: float = 10.0

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            username=self.username,
            password=self.password,
        )

    @property
    def has_oauth2(self) -> bool:
        return self.credentials.has_oauth2

    @property
    def has_basic_auth(self) -> bool:
        return self.credentials.has_basic_auth

    @property
    def is_authenticated(self) -> bool:
        return self.has_oauth2 or self.has_basic_auth


@dataclass(frozen=True)
class CacheConfig:
    """In-memory response cache settings."""
    enabled: bool = True
    # 15s keeps anonymous clients under the ~10s OpenSky rate limit
    ttl_seconds: float = 15.0
    max_size: int = 100
    sweep_interval_seconds: float = 60.0


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server bind settings."""
    host: str = 'localhost'
    port: int = 3001


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    opensky: OpenSkyConfig = field(default_factory=OpenSkyConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    debug: bool = False


def _load_credentials_file(path: str) -> Optional[Credentials]:
    """
    Read OpenSky credentials from a JSON file.

    Returns None if the file is missing, unreadable or holds no usable
    credentials.
    """
    if not os.path.exists(path):
        logger.debug(f'No credentials file at {path}')
        return None

    try:
        with open(path, encoding='utf-8') as f:
            opensky = json.load(f).get('opensky') or {}
    except (OSError, ValueError, AttributeError) as e:
        logger.warning(f'Could not read {path}, falling back to environment: {e}')
        return None

    if opensky.get('clientId') and opensky.get('clientSecret'):
        logger.info(f'OAuth2 credentials loaded from {path}')
        return Credentials(
            client_id=opensky['clientId'],
            client_secret=opensky['clientSecret'],
        )

    if opensky.get('username') and opensky.get('password'):
        logger.info(f'Basic auth credentials loaded from {path}')
        return Credentials(
            username=opensky['username'],
            password=opensky['password'],
        )

    logger.warning(f'{path} found but no valid credentials detected')
    return None


def _credentials_from_env() -> Credentials:
    return Credentials(
        client_id=os.getenv('OPENSKY_CLIENT_ID') or None,
        client_secret=os.getenv('OPENSKY_CLIENT_SECRET') or None,
        username=os.getenv('OPENSKY_USERNAME') or None,
        password=os.getenv('OPENSKY_PASSWORD') or None,
    )


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    credentials_path = os.getenv('OPENSKY_CREDENTIALS_FILE', 'credentials.json')
    credentials = _load_credentials_file(credentials_path) or _credentials_from_env()

    if credentials.has_oauth2:
        logger.info('Config: OAuth2 credentials available')
    elif credentials.has_basic_auth:
        logger.info('Config: basic auth credentials available')
    else:
        logger.warning('Config: no credentials found, using anonymous access (rate limited)')

    return AppConfig(
        opensky=OpenSkyConfig(
            username=credentials.username,
            password=credentials.password,
            client_id=credentials.client_id,
            client_secret=credentials.client_secret,
            timeout_seconds=float(os.getenv('OPENSKY_TIMEOUT_SECONDS', '10')),
        ),
        cache=CacheConfig(
            enabled=os.getenv('CACHE_ENABLED', 'true').lower() != 'false',
            ttl_seconds=float(os.getenv('CACHE_TTL', '15')),
            max_size=int(os.getenv('CACHE_MAX_SIZE', '100')),
        ),
        server=ServerConfig(
            host=os.getenv('HOST', 'localhost'),
            port=int(os.getenv('PORT', '3001')),
        ),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
    )
