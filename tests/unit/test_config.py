'''
Unit tests for settings and configuration providers.
'''

from __future__ import annotations

import pytest
from pydantic import ValidationError

from ompass2fa.core.config import LoggingConfig, OmpassSettings, SessionSettings, Settings
from ompass2fa.services import InMemoryConfigurationProvider

from conftest import make_config


class TestSettings:
    '''
    Test environment-driven settings.
    '''

    def test_ompass_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv('OMPASS_SERVER_URL', ' https://ompass.example.com ')
        monkeypatch.setenv('OMPASS_CLIENT_ID', 'client-123')
        monkeypatch.setenv('OMPASS_SECRET_KEY', 'secret')
        monkeypatch.setenv('OMPASS_ENABLED', 'true')
        monkeypatch.setenv('OMPASS_ADMIN_USERS', '["admin", "ops"]')

        settings = OmpassSettings()

        assert settings.server_url == 'https://ompass.example.com'
        assert settings.client_id == 'client-123'
        assert settings.secret_key.get_secret_value() == 'secret'
        assert settings.enabled is True
        assert settings.admin_users == ['admin', 'ops']

    def test_emergency_bypass_variable(self, monkeypatch) -> None:
        '''
        Test the override is read from OMPASS_2FA_BYPASS.
        '''
        monkeypatch.setenv('OMPASS_2FA_BYPASS', 'true')
        assert OmpassSettings().bypass is True

    def test_bypass_off_by_default(self, monkeypatch) -> None:
        monkeypatch.delenv('OMPASS_2FA_BYPASS', raising=False)
        assert OmpassSettings().bypass is False

    def test_prefixed_bypass_variable(self, monkeypatch) -> None:
        monkeypatch.delenv('OMPASS_2FA_BYPASS', raising=False)
        monkeypatch.setenv('OMPASS_BYPASS', 'true')
        assert OmpassSettings().bypass is True

    def test_unprefixed_bypass_ignored(self, monkeypatch) -> None:
        '''
        Test a generic BYPASS variable cannot turn 2FA off.
        '''
        monkeypatch.delenv('OMPASS_2FA_BYPASS', raising=False)
        monkeypatch.delenv('OMPASS_BYPASS', raising=False)
        monkeypatch.setenv('BYPASS', 'true')
        assert OmpassSettings().bypass is False

    def test_session_defaults(self) -> None:
        settings = SessionSettings()

        assert settings.cookie_name == 'OMPASS2FASESSION'
        assert settings.same_site == 'lax'

    def test_invalid_same_site(self) -> None:
        with pytest.raises(ValidationError):
            SessionSettings(same_site='sometimes')

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError):
            LoggingConfig(level='LOUD')

    def test_invalid_environment(self) -> None:
        with pytest.raises(ValidationError):
            Settings(environment='moon')


class TestInMemoryConfigurationProvider:
    '''
    Test the runtime-updatable provider.
    '''

    def test_empty(self) -> None:
        assert InMemoryConfigurationProvider().get_configuration() is None

    def test_update_keeps_other_fields(self) -> None:
        provider = InMemoryConfigurationProvider(make_config())

        updated = provider.update(enabled=False)

        assert provider.get_configuration() is updated
        assert updated.enabled is False
        assert updated.client_id == 'client-123'
        assert updated.secret_key.get_secret_value() == 'super-secret-key'

    def test_update_from_nothing(self) -> None:
        provider = InMemoryConfigurationProvider()
        provider.update(server_url='https://ompass.example.com')

        assert provider.get_configuration().server_url == 'https://ompass.example.com'

    def test_snapshots_are_replaced(self) -> None:
        '''
        Test readers keep a consistent snapshot across updates.
        '''
        provider = InMemoryConfigurationProvider(make_config())
        before = provider.get_configuration()

        provider.update(client_id='client-456')

        assert before.client_id == 'client-123'
        assert provider.get_configuration().client_id == 'client-456'

    def test_from_settings(self, monkeypatch) -> None:
        monkeypatch.setenv('OMPASS_SERVER_URL', 'https://ompass.example.com')
        monkeypatch.setenv('OMPASS_ENABLED', 'true')
        monkeypatch.setenv('OMPASS_LANGUAGE', 'KR')

        provider = InMemoryConfigurationProvider.from_settings(Settings())
        config = provider.get_configuration()

        assert config.server_url == 'https://ompass.example.com'
        assert config.enabled is True
        assert config.language == 'KR'
        assert config.missing_fields() == ['client_id', 'secret_key']
