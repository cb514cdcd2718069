"""
Configuration providers for ompass2fa.

Core components depend on the ``ConfigurationProvider`` interface rather
than on the global settings object, so the source of configuration can be
swapped (environment, admin endpoint, test doubles).
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any, Optional

from ..core import Settings, get_logger, get_settings
from ..models import OmpassConfiguration


class ConfigurationProvider(ABC):
    """Supplies consistent snapshots of the OMPASS configuration."""

    @abstractmethod
    def get_configuration(self) -> Optional[OmpassConfiguration]:
        """
        Return the current configuration snapshot.

        Returns:
            The snapshot, or None when no configuration is available
        """


class InMemoryConfigurationProvider(ConfigurationProvider):
    """Holds the configuration in memory; updatable at runtime."""

    def __init__(self, configuration: Optional[OmpassConfiguration] = None):
        self.logger = get_logger(__name__)
        self._lock = threading.RLock()
        self._configuration = configuration

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "InMemoryConfigurationProvider":
        """Seed a provider from the OMPASS section of the settings."""
        settings = settings or get_settings()
        ompass = settings.ompass
        return cls(
            OmpassConfiguration(
                server_url=ompass.server_url,
                client_id=ompass.client_id,
                secret_key=ompass.secret_key,
                enabled=ompass.enabled,
                language=ompass.language,
                timeout=ompass.timeout,
                max_retries=ompass.max_retries,
            )
        )

    def get_configuration(self) -> Optional[OmpassConfiguration]:
        with self._lock:
            return self._configuration

    def set_configuration(self, configuration: Optional[OmpassConfiguration]) -> None:
        """Replace the whole snapshot."""
        with self._lock:
            self._configuration = configuration

        self.logger.info(
            "OMPASS configuration replaced",
            available=configuration is not None,
            enabled=configuration.enabled if configuration else None,
        )

    def update(self, **changes: Any) -> OmpassConfiguration:
        """
        Apply field changes on top of the current snapshot.

        Args:
            **changes: OmpassConfiguration field values

        Returns:
            The new snapshot
        """
        with self._lock:
            current = self._configuration or OmpassConfiguration()
            updated = OmpassConfiguration(**{**current.model_dump(), **changes})
            self._configuration = updated

        self.logger.info(
            "OMPASS configuration updated",
            fields=sorted(changes),
            enabled=updated.enabled,
            server_url=updated.server_url,
        )
        return updated
