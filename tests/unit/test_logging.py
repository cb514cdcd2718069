'''
Unit tests for the structlog processors and request logging.
'''

from __future__ import annotations

import pytest
from structlog.testing import capture_logs

from ompass2fa.core import RequestLoggingContext, get_logger
from ompass2fa.core.logging import REDACTED, redact_secrets


class TestRedactSecrets:
    '''
    Test credential masking before rendering.
    '''

    def test_top_level_keys(self) -> None:
        event = redact_secrets(None, 'info', {
            'event': 'OMPASS API call',
            'secret_key': 'super-secret-key',
            'Authorization': 'Bearer super-secret-key',
            'username': 'alice',
        })

        assert event == {
            'event': 'OMPASS API call',
            'secret_key': REDACTED,
            'Authorization': REDACTED,
            'username': 'alice',
        }

    def test_nested_values(self) -> None:
        event = redact_secrets(None, 'info', {
            'event': 'callback',
            'details': {'token': 'abc', 'relay_state': '/job/build'},
            'headers': [{'cookie': 'OMPASS2FASESSION=1'}],
        })

        assert event['details'] == {'token': REDACTED, 'relay_state': '/job/build'}
        assert event['headers'] == [{'cookie': REDACTED}]

    def test_event_message_untouched(self) -> None:
        assert redact_secrets(None, 'info', {'event': 'token'})['event'] == 'token'


class TestRequestLoggingContext:
    '''
    Test the per-request completion record.
    '''

    def test_logs_status(self) -> None:
        with capture_logs() as logs:
            with RequestLoggingContext(get_logger('test'), 'GET', '/job/build', '127.0.0.1') as context:
                context.status_code = 302

        completed = [entry for entry in logs if entry['event'] == 'Request completed']
        assert len(completed) == 1
        assert completed[0]['status_code'] == 302
        assert completed[0]['path'] == '/job/build'
        assert completed[0]['log_level'] == 'info'

    def test_exception_reported_as_server_error(self) -> None:
        with capture_logs() as logs:
            with pytest.raises(RuntimeError):
                with RequestLoggingContext(get_logger('test'), 'POST', '/ompassAuth/', '127.0.0.1'):
                    raise RuntimeError('boom')

        completed = [entry for entry in logs if entry['event'] == 'Request completed']
        assert completed[0]['status_code'] == 500
        assert completed[0]['log_level'] == 'warning'
