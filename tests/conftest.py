'''
Shared fixtures for ompass2fa tests.
'''

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from ompass2fa.auth import EmergencyOverride, SessionManager
from ompass2fa.main import create_app
from ompass2fa.models import (
    AuthStartRequest,
    AuthStartResponse,
    OmpassConfiguration,
    TokenVerifyRequest,
    TokenVerifyResponse,
)
from ompass2fa.services import ClientCache, InMemoryConfigurationProvider

CLIENT_ID = 'client-123'
SECRET = 'super-secret-key'
OMPASS_URL = 'https://ompass.example.com/auth/page?session=xyz'


def make_config(**overrides: Any) -> OmpassConfiguration:
    '''
    Build a complete, enabled configuration.
    '''
    values = {
        'server_url': 'https://ompass.example.com',
        'client_id': CLIENT_ID,
        'secret_key': SECRET,
        'enabled': True,
        'language': 'EN',
    }
    values.update(overrides)
    return OmpassConfiguration(**values)


class FakeOmpassClient:
    '''
    Stand-in for OmpassClient recording its calls.
    '''

    def __init__(self, config: Optional[OmpassConfiguration] = None) -> None:
        self.config = config
        self.start_requests: List[AuthStartRequest] = []
        self.verify_requests: List[TokenVerifyRequest] = []
        self.verify_result: Optional[TokenVerifyResponse] = TokenVerifyResponse(
            username='alice', client_id=CLIENT_ID
        )
        self.start_error: Optional[Exception] = None
        self.verify_error: Optional[Exception] = None
        self.authenticators_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.closed = False

    def start_auth(self, request: AuthStartRequest) -> AuthStartResponse:
        self.start_requests.append(request)
        if self.start_error:
            raise self.start_error
        return AuthStartResponse(ompass_url=OMPASS_URL)

    def verify_token(self, request: TokenVerifyRequest) -> Optional[TokenVerifyResponse]:
        self.verify_requests.append(request)
        if self.verify_error:
            raise self.verify_error
        return self.verify_result

    def get_authenticators(self, username: str) -> Dict[str, Any]:
        if self.authenticators_error:
            raise self.authenticators_error
        return {'authenticators': []}

    def close(self) -> None:
        self.closed = True
        if self.close_error:
            raise self.close_error


@pytest.fixture
def provider() -> InMemoryConfigurationProvider:
    return InMemoryConfigurationProvider(make_config())


@pytest.fixture
def fake_client() -> FakeOmpassClient:
    return FakeOmpassClient()


@pytest.fixture
def client_cache(provider, fake_client) -> ClientCache:
    return ClientCache(provider, client_factory=lambda config: fake_client)


@pytest.fixture
def override() -> EmergencyOverride:
    return EmergencyOverride(False)


@pytest.fixture
def app(provider, client_cache, override):
    return create_app(
        provider=provider,
        client_cache=client_cache,
        session_manager=SessionManager(timeout_seconds=600),
        override=override,
        admin_users=['admin'],
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app, follow_redirects=False)


def as_user(username: str) -> Dict[str, str]:
    '''
    Headers set by the authenticating proxy for ``username``.
    '''
    return {'X-Forwarded-User': username}
