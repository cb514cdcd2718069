"""
ompass2fa data models.

This module provides the Pydantic models for configuration snapshots, the
OMPASS API wire format and the authentication page views.
"""

from __future__ import annotations

from .config import (
    OmpassConfiguration,
    ConfigView,
    ConnectionSettings,
    ConfigUpdateRequest,
    ConnectionTestResult,
)
from .ompass import (
    Language,
    LoginClientType,
    AuthStartRequest,
    AuthStartResponse,
    TokenVerifyRequest,
    TokenVerifyResponse,
)
from .views import AuthPageState, CallbackPageState

__all__ = [
    # Configuration models
    "OmpassConfiguration",
    "ConfigView",
    "ConnectionSettings",
    "ConfigUpdateRequest",
    "ConnectionTestResult",
    # OMPASS API models
    "Language",
    "LoginClientType",
    "AuthStartRequest",
    "AuthStartResponse",
    "TokenVerifyRequest",
    "TokenVerifyResponse",
    # View models
    "AuthPageState",
    "CallbackPageState",
]
