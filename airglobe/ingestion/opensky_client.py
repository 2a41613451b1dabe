"""
OpenSky Network API client.

Handles communication with the OpenSky REST API, including:
- Authentication (OAuth2 bearer token, legacy basic auth, or anonymous)
- Bounding box queries for geographic filtering
- Error normalization into the AirGlobe exception types

Each call makes exactly one upstream request with no retries. The response
cache TTL decides how soon a failed query is tried again.
"""

import logging
from typing import TYPE_CHECKING, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from airglobe.exceptions import UpstreamError, UpstreamTimeoutError
from airglobe.geo import BoundingBox
from airglobe.ingestion.auth import Credentials, TokenProvider
from airglobe.ingestion.state_vectors import AircraftRecord, parse_state_vectors

if TYPE_CHECKING:
    from airglobe.config import OpenSkyConfig

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = 'https://opensky-network.org/api'


class OpenSkyClient:
    """
    Client for OpenSky Network API.

    Handles:
    - GET requests to /states/all endpoint
    - Optional authentication for higher rate limits
    - Bounding box filtering
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        credentials: Optional[Credentials] = None,
        token_provider: Optional[TokenProvider] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.credentials = credentials or Credentials()
        self.session = session or requests.Session()
        self.token_provider = token_provider or TokenProvider(
            timeout=timeout,
            session=self.session,
        )

        if self.credentials.has_oauth2:
            logger.info('OpenSky client initialized with OAuth2 authentication')
        elif self.credentials.has_basic_auth:
            logger.info('OpenSky client initialized with basic authentication')
        else:
            logger.warning('OpenSky client running without authentication (lower rate limits)')

    @classmethod
    def from_config(
        cls,
        opensky: 'OpenSkyConfig',
        token_provider: Optional[TokenProvider] = None,
    ) -> 'OpenSkyClient':
        """Create client from application configuration."""
        return cls(
            base_url=opensky.base_url,
            timeout=opensky.timeout_seconds,
            credentials=opensky.credentials,
            token_provider=token_provider or TokenProvider(
                token_url=opensky.token_url,
                timeout=opensky.timeout_seconds,
            ),
        )

    def _prepare_auth(self, credentials: Credentials) -> tuple:
        """
        Build (headers, auth) for a request.

        OAuth2 wins over basic auth when both are configured.
        """
        if credentials.has_oauth2:
            token = self.token_provider.get_token(
                credentials.client_id,
                credentials.client_secret,
            )
            logger.debug('Using OAuth2 authentication')
            return {'Authorization': f'Bearer {token.value}'}, None

        if credentials.has_basic_auth:
            logger.debug('Using basic authentication')
            return {}, HTTPBasicAuth(credentials.username, credentials.password)

        logger.debug('No credentials provided, using anonymous access')
        return {}, None

    def fetch_states(
        self,
        bbox: Optional[BoundingBox] = None,
        credentials: Optional[Credentials] = None,
    ) -> List[AircraftRecord]:
        """
        Fetch current state vectors from OpenSky.

        Args:
            bbox: Optional bounding box; None means worldwide
            credentials: Overrides the client's configured credentials

        Returns:
            Parsed aircraft records (possibly empty)

        Raises:
            AuthError if an OAuth2 token could not be obtained
            UpstreamTimeoutError if the request exceeded the timeout
            UpstreamError on transport failures, non-2xx status or a
            malformed payload
        """
        url = f'{self.base_url}/states/all'
        params = bbox.to_params() if bbox else {}
        headers, auth = self._prepare_auth(credentials or self.credentials)

        logger.debug(f'Fetching states: {url} params={params}')

        try:
            response = self.session.get(
                url,
                params=params,
                headers=headers,
                auth=auth,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error('OpenSky API timeout')
            raise UpstreamTimeoutError(
                f'OpenSky API request timed out after {self.timeout:g} seconds'
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f'OpenSky request failed: {e}')
            raise UpstreamError(f'OpenSky request failed: {e}') from e

        if not response.ok:
            body = _read_body(response)
            if response.status_code == 429:
                logger.warning('OpenSky rate limit exceeded')
            else:
                logger.error(f'OpenSky API error: {response.status_code}')
            raise UpstreamError(
                f'OpenSky API request failed with status {response.status_code}: {body}',
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamError(
                'Invalid response format from OpenSky API',
                status_code=response.status_code,
            ) from e

        api_time = data.get('time') if isinstance(data, dict) else None
        if isinstance(api_time, bool) or not isinstance(api_time, (int, float)):
            raise UpstreamError(
                'Invalid response format from OpenSky API',
                status_code=response.status_code,
            )

        states_raw = data.get('states') or []
        if not isinstance(states_raw, list):
            raise UpstreamError(
                'Invalid response format from OpenSky API',
                status_code=response.status_code,
            )

        logger.info(f'Received {len(states_raw)} state vectors from OpenSky')

        return parse_state_vectors(states_raw)


def _read_body(response: requests.Response) -> str:
    """Best-effort body text for error messages."""
    try:
        return response.text
    except (requests.exceptions.RequestException, ValueError):
        return 'Unknown error'
