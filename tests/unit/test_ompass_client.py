'''
Unit tests for the OMPASS HTTP client.
'''

from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from ompass2fa.core import (
    AuthenticatorAPIError,
    AuthenticatorError,
    AuthenticatorTransportError,
    TimeoutError,
)
from ompass2fa.models import AuthStartRequest, Language, TokenVerifyRequest
from ompass2fa.services import OmpassClient

from conftest import CLIENT_ID, SECRET, make_config


def make_client(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> OmpassClient:
    kwargs.setdefault('retry_delay', 0)
    return OmpassClient(
        base_url='https://ompass.example.com/',
        client_id=CLIENT_ID,
        secret_key=SECRET,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestRequests:
    '''
    Test what the client sends.
    '''

    def test_start_auth(self) -> None:
        '''
        Test the start-auth body, path and credentials.
        '''
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'data': {'ompassUrl': 'https://ompass.example.com/page'}})

        with make_client(handler) as client:
            response = client.start_auth(AuthStartRequest(username='alice', lang_init=Language.KR))

        assert response.ompass_url == 'https://ompass.example.com/page'

        request = seen[0]
        assert request.method == 'POST'
        assert request.url.path == '/v2/auth/ompass'
        assert request.headers['authorization'] == f'Bearer {SECRET}'
        assert request.headers['x-client-id'] == CLIENT_ID
        assert json.loads(request.content) == {
            'username': 'alice',
            'langInit': 'KR',
            'loginClientType': 'BROWSER',
        }

    def test_verify_token(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'username': 'alice', 'clientId': CLIENT_ID})

        with make_client(handler) as client:
            response = client.verify_token(TokenVerifyRequest(username='alice', token='abc'))

        assert response.username == 'alice'
        assert response.client_id == CLIENT_ID
        assert seen[0].url.path == '/v2/auth/ompass/token-verification'
        assert json.loads(seen[0].content) == {'username': 'alice', 'token': 'abc'}

    def test_get_authenticators(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={'data': {'authenticators': []}})

        with make_client(handler) as client:
            assert client.get_authenticators('alice') == {'authenticators': []}

        assert seen[0].method == 'GET'
        assert seen[0].url.params['username'] == 'alice'

    def test_from_configuration(self) -> None:
        config = make_config(timeout=3.0, max_retries=2)
        client = OmpassClient.from_configuration(config)

        try:
            assert client.base_url == 'https://ompass.example.com'
            assert client.timeout == 3.0
            assert client.max_retries == 2
        finally:
            client.close()


class TestErrors:
    '''
    Test error mapping and retries.
    '''

    def test_api_error_carries_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={'message': 'invalid secret'})

        with make_client(handler) as client:
            with pytest.raises(AuthenticatorAPIError) as exc_info:
                client.verify_token(TokenVerifyRequest(username='alice', token='abc'))

        assert exc_info.value.http_status_code == 401
        assert 'invalid secret' in exc_info.value.message

    def test_retries_gateway_errors(self) -> None:
        '''
        Test 503 answers are retried up to max_retries.
        '''
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(503)
            return httpx.Response(200, json={'ompassUrl': 'https://ompass.example.com/page'})

        with make_client(handler, max_retries=1) as client:
            response = client.start_auth(AuthStartRequest(username='alice'))

        assert len(calls) == 2
        assert response.ompass_url == 'https://ompass.example.com/page'

    def test_gateway_error_after_retries(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        with make_client(handler, max_retries=1) as client:
            with pytest.raises(AuthenticatorAPIError) as exc_info:
                client.start_auth(AuthStartRequest(username='alice'))

        assert len(calls) == 2
        assert exc_info.value.http_status_code == 502

    def test_verify_token_not_replayed(self) -> None:
        '''
        Test a gateway error on token verification is reported, not retried.
        '''
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        with make_client(handler, max_retries=2) as client:
            with pytest.raises(AuthenticatorAPIError) as exc_info:
                client.verify_token(TokenVerifyRequest(username='alice', token='abc'))

        assert len(calls) == 1
        assert exc_info.value.http_status_code == 503

    def test_get_authenticators_retries_gateway_errors(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(504)
            return httpx.Response(200, json={'authenticators': []})

        with make_client(handler, max_retries=1) as client:
            assert client.get_authenticators('alice') == {'authenticators': []}

        assert len(calls) == 2

    def test_verify_token_retries_connect_errors(self) -> None:
        '''
        Test a request that never reached the server is sent again.
        '''
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError('connection refused', request=request)
            return httpx.Response(200, json={'username': 'alice', 'clientId': CLIENT_ID})

        with make_client(handler, max_retries=1) as client:
            response = client.verify_token(TokenVerifyRequest(username='alice', token='abc'))

        assert len(calls) == 2
        assert response.username == 'alice'

    def test_connect_error(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError('connection refused', request=request)

        with make_client(handler, max_retries=2) as client:
            with pytest.raises(AuthenticatorTransportError):
                client.start_auth(AuthStartRequest(username='alice'))

        assert len(calls) == 3

    def test_timeout(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout('timed out', request=request)

        with make_client(handler) as client:
            with pytest.raises(TimeoutError) as exc_info:
                client.start_auth(AuthStartRequest(username='alice'))

        assert exc_info.value.status_code == 504

    @pytest.mark.parametrize('body', [{'unexpected': True}, {'ompassUrl': ''}])
    def test_malformed_answer(self, body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        with make_client(handler) as client:
            with pytest.raises(AuthenticatorError):
                client.start_auth(AuthStartRequest(username='alice'))

    def test_non_json_answer(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text='<html>maintenance</html>')

        with make_client(handler) as client:
            with pytest.raises(AuthenticatorError):
                client.verify_token(TokenVerifyRequest(username='alice', token='abc'))
