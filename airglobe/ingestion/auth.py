"""
OpenSky OAuth2 client-credentials authentication.

OpenSky issues bearer tokens valid for about an hour. The provider keeps
the current token in memory and only goes back to the identity provider
when the token is within REFRESH_MARGIN_SECONDS of expiring, so the
common path costs no network round trip.

Legacy basic-auth accounts (username/password) bypass this module entirely.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from airglobe.exceptions import AuthError

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_URL = (
    'https://auth.opensky-network.org/auth/realms/opensky-network'
    '/protocol/openid-connect/token'
)

REFRESH_MARGIN_SECONDS = 60
DEFAULT_EXPIRES_IN = 3600


@dataclass(frozen=True)
class Credentials:
    """OpenSky credentials; any combination may be missing."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @property
    def has_oauth2(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class AccessToken:
    """Bearer token with its absolute expiry (epoch seconds)."""
    value: str
    expires_at: float

    def is_fresh(self, now: float) -> bool:
        """True while the token is outside the refresh margin."""
        return now < self.expires_at - REFRESH_MARGIN_SECONDS


class TokenProvider:
    """
    Acquires and caches OAuth2 access tokens.

    One instance is shared by the whole service. Concurrent callers that
    find the token stale may each request a new one; the last response
    wins, which is harmless given tokens refresh roughly hourly.
    """

    def __init__(
        self,
        token_url: str = DEFAULT_TOKEN_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.token_url = token_url
        self.timeout = timeout
        self.session = session or requests.Session()
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._refresh_count = 0

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None and self._token.is_fresh(self._clock())

    def invalidate(self) -> None:
        """Forget the cached token; the next call fetches a new one."""
        self._token = None

    def get_token(self, client_id: str, client_secret: str) -> AccessToken:
        """
        Return a valid access token, requesting a new one if needed.

        Raises:
            AuthError on any failure; the cached token is cleared first
        """
        token = self._token
        if token is not None and token.is_fresh(self._clock()):
            return token

        # Stale or failed tokens must never be served, so drop it up front
        self._token = None
        token = self._request_token(client_id, client_secret)

        self._token = token
        self._refresh_count += 1
        return token

    def _request_token(self, client_id: str, client_secret: str) -> AccessToken:
        logger.info(f'Requesting OAuth2 token from {self.token_url}')

        try:
            response = self.session.post(
                self.token_url,
                data={
                    'grant_type': 'client_credentials',
                    'client_id': client_id,
                    'client_secret': client_secret,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error('OAuth2 token request timed out')
            raise AuthError(
                f'OAuth2 token request timed out after {self.timeout:g} seconds'
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(f'OAuth2 token request failed: {e}')
            raise AuthError(f'OAuth2 token request failed: {e}') from e

        if not response.ok:
            body = response.text
            logger.error(f'OAuth2 token request failed: {response.status_code}')
            raise AuthError(
                f'Failed to get OAuth2 token: {response.status_code} - {body}',
                status_code=response.status_code,
                body=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError(
                'OAuth2 token response is not valid JSON',
                status_code=response.status_code,
            ) from e

        access_token = data.get('access_token') if isinstance(data, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise AuthError(
                'OAuth2 token response has no access_token',
                status_code=response.status_code,
            )

        expires_in = data.get('expires_in') or DEFAULT_EXPIRES_IN
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise AuthError(
                f'OAuth2 token response has invalid expires_in: {expires_in!r}',
                status_code=response.status_code,
            )
        if expires_in <= REFRESH_MARGIN_SECONDS:
            raise AuthError(
                f'OAuth2 token expires in {expires_in}s, inside the '
                f'{REFRESH_MARGIN_SECONDS}s refresh margin',
                status_code=response.status_code,
            )

        logger.info(f'OAuth2 token obtained (expires in {expires_in}s)')
        return AccessToken(
            value=access_token,
            expires_at=self._clock() + expires_in,
        )

    @property
    def stats(self) -> dict:
        """Get token cache statistics."""
        token = self._token
        return {
            'authenticated': self.is_authenticated,
            'expires_at': token.expires_at if token else None,
            'refresh_count': self._refresh_count,
        }
