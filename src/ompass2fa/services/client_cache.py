"""
Shared OMPASS client cache.

One client is kept per process and rebuilt whenever the server URL, client
ID or secret key change. Building a client opens an HTTP connection pool,
so it is not done per request.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..core import (
    ConfigurationError,
    ConfigurationUnavailableError,
    LoggerMixin,
    compute_config_fingerprint,
)
from ..models import OmpassConfiguration
from .config_provider import ConfigurationProvider
from .ompass_client import OmpassClient

ClientFactory = Callable[[OmpassConfiguration], OmpassClient]


class ClientCache(LoggerMixin):
    """Thread-safe holder of the shared OMPASS client."""

    def __init__(
        self,
        provider: ConfigurationProvider,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.provider = provider
        self.client_factory = client_factory or OmpassClient.from_configuration
        self._lock = threading.Lock()
        self._instance: Optional[OmpassClient] = None
        self._fingerprint: Optional[str] = None

    def get_instance(self) -> OmpassClient:
        """
        Return a client configured with the current settings.

        A new client is created when none exists yet or when the
        configuration changed since the cached one was built.

        Raises:
            ConfigurationUnavailableError: If the provider has no configuration
            ConfigurationError: If server URL, client ID or secret are blank
        """
        with self._lock:
            config = self.provider.get_configuration()
            if config is None:
                raise ConfigurationUnavailableError()

            missing = config.missing_fields()
            if missing:
                raise ConfigurationError(
                    f"OMPASS is not configured: missing {', '.join(missing)}",
                    details={"missing": missing},
                )

            fingerprint = compute_config_fingerprint(
                config.server_url,
                config.client_id,
                config.secret_key.get_secret_value(),
            )

            if self._instance is None or fingerprint != self._fingerprint:
                if self._instance is not None:
                    self.logger.info("OMPASS configuration changed, recreating client")
                    self._close_instance()

                self._instance = self.client_factory(config)
                self._fingerprint = fingerprint
                self.logger.info("OMPASS client created", server_url=config.server_url)

            return self._instance

    get = get_instance

    def reset(self) -> None:
        """Close and forget the cached client; the next call rebuilds it."""
        with self._lock:
            self._close_instance()
            self._fingerprint = None
        self.logger.info("OMPASS client cache reset")

    invalidate = reset

    def _close_instance(self) -> None:
        if self._instance is None:
            return
        try:
            self._instance.close()
        except Exception as e:
            self.logger.warning("Error closing previous OMPASS client", error=str(e))
        self._instance = None
