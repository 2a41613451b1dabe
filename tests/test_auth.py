"""Tests for the OAuth2 token provider."""

import pytest
import requests

from airglobe.exceptions import AuthError
from airglobe.ingestion.auth import (
    DEFAULT_TOKEN_URL,
    REFRESH_MARGIN_SECONDS,
    AccessToken,
    Credentials,
    TokenProvider,
)
from tests.conftest import make_response


@pytest.fixture
def provider(session, clock):
    return TokenProvider(session=session, clock=clock)


def _token_response(token='token-1', expires_in=3600):
    body = {'access_token': token, 'token_type': 'Bearer'}
    if expires_in is not None:
        body['expires_in'] = expires_in
    return make_response(200, json_body=body)


class TestGetToken:

    def test_requests_client_credentials_grant(self, provider, session, clock):
        session.post.return_value = _token_response()

        token = provider.get_token('my-client', 'my-secret')

        assert token == AccessToken(value='token-1', expires_at=clock.now + 3600)
        session.post.assert_called_once_with(
            DEFAULT_TOKEN_URL,
            data={
                'grant_type': 'client_credentials',
                'client_id': 'my-client',
                'client_secret': 'my-secret',
            },
            timeout=10.0,
        )

    def test_cached_token_reused_without_request(self, provider, session, clock):
        session.post.return_value = _token_response()

        first = provider.get_token('id', 'secret')
        clock.advance(1800)
        second = provider.get_token('id', 'secret')

        assert first is second
        assert session.post.call_count == 1
        assert provider.is_authenticated

    def test_refreshes_inside_safety_margin(self, provider, session, clock):
        session.post.side_effect = [_token_response('token-1'), _token_response('token-2')]

        first = provider.get_token('id', 'secret')
        clock.advance(3600 - REFRESH_MARGIN_SECONDS)
        second = provider.get_token('id', 'secret')

        assert session.post.call_count == 2
        assert second.value == 'token-2'
        assert second.expires_at > first.expires_at

    def test_just_outside_margin_still_cached(self, provider, session, clock):
        session.post.return_value = _token_response()

        provider.get_token('id', 'secret')
        clock.advance(3600 - REFRESH_MARGIN_SECONDS - 1)
        provider.get_token('id', 'secret')

        assert session.post.call_count == 1

    def test_refreshes_after_expiry(self, provider, session, clock):
        session.post.side_effect = [_token_response('token-1'), _token_response('token-2')]

        first = provider.get_token('id', 'secret')
        clock.advance(7200)
        second = provider.get_token('id', 'secret')

        assert second.value == 'token-2'
        assert second.expires_at > first.expires_at

    def test_default_expiry_when_absent(self, provider, session, clock):
        session.post.return_value = _token_response(expires_in=None)

        token = provider.get_token('id', 'secret')

        assert token.expires_at == clock.now + 3600

    def test_invalidate_forces_new_request(self, provider, session):
        session.post.return_value = _token_response()

        provider.get_token('id', 'secret')
        provider.invalidate()
        provider.get_token('id', 'secret')

        assert session.post.call_count == 2


class TestGetTokenFailures:

    def test_non_2xx_raises_with_status(self, provider, session):
        session.post.return_value = make_response(401, text='invalid_client')

        with pytest.raises(AuthError) as exc_info:
            provider.get_token('id', 'bad-secret')

        assert exc_info.value.status_code == 401
        assert 'invalid_client' in str(exc_info.value)

    def test_failure_clears_cached_token(self, provider, session, clock):
        session.post.side_effect = [
            _token_response('token-1'),
            make_response(503, text='unavailable'),
            _token_response('token-3'),
        ]

        provider.get_token('id', 'secret')
        clock.advance(3600)
        with pytest.raises(AuthError):
            provider.get_token('id', 'secret')

        assert not provider.is_authenticated
        assert provider.get_token('id', 'secret').value == 'token-3'

    def test_timeout_raises_auth_error(self, provider, session):
        session.post.side_effect = requests.exceptions.Timeout('read timed out')

        with pytest.raises(AuthError, match='timed out'):
            provider.get_token('id', 'secret')

    def test_connection_error_raises_auth_error(self, provider, session):
        session.post.side_effect = requests.exceptions.ConnectionError('refused')

        with pytest.raises(AuthError, match='refused'):
            provider.get_token('id', 'secret')

    @pytest.mark.parametrize('response', [
        make_response(200, text='<html>not json</html>'),
        make_response(200, json_body={'token_type': 'Bearer'}),
        make_response(200, json_body={'access_token': ''}),
        make_response(200, json_body=['token']),
        make_response(200, json_body={'access_token': 'tok', 'expires_in': 'soon'}),
    ])
    def test_malformed_body_raises(self, provider, session, response):
        session.post.return_value = response

        with pytest.raises(AuthError):
            provider.get_token('id', 'secret')

        assert not provider.is_authenticated

    @pytest.mark.parametrize('expires_in', [30, REFRESH_MARGIN_SECONDS, -5])
    def test_token_inside_refresh_margin_rejected(self, provider, session, expires_in):
        session.post.return_value = _token_response(expires_in=expires_in)

        with pytest.raises(AuthError, match='refresh margin'):
            provider.get_token('id', 'secret')

        assert not provider.is_authenticated

    def test_token_just_outside_refresh_margin_accepted(self, provider, session, clock):
        session.post.return_value = _token_response(expires_in=REFRESH_MARGIN_SECONDS + 1)

        token = provider.get_token('id', 'secret')

        assert token.is_fresh(clock())


class TestCredentials:

    def test_modes(self):
        assert Credentials(client_id='a', client_secret='b').has_oauth2
        assert not Credentials(client_id='a').has_oauth2
        assert Credentials(username='u', password='p').has_basic_auth
        assert not Credentials(username='u', password='').has_basic_auth
