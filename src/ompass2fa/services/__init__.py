"""
Services for ompass2fa.

This package contains the configuration providers, the OMPASS API client
and the shared client cache.
"""

from __future__ import annotations

from .config_provider import ConfigurationProvider, InMemoryConfigurationProvider
from .ompass_client import OmpassClient
from .client_cache import ClientCache, ClientFactory

__all__ = [
    "ConfigurationProvider",
    "InMemoryConfigurationProvider",
    "OmpassClient",
    "ClientCache",
    "ClientFactory",
]
