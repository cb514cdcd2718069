"""
Authentication modules for ompass2fa.

This package contains the 2FA gate, session handling, identity resolution
and middleware.
"""

from __future__ import annotations

from .gate import (
    VERIFIED_SUFFIX,
    RELAY_STATE_KEY,
    AUTH_PATH,
    CALLBACK_PATH,
    CONFIG_PATH,
    BypassPolicy,
    EmergencyOverride,
    TwoFactorGate,
    VerificationState,
    build_relay_state,
    emergency_override,
    verification_state,
    verified_flag_key,
)
from .identity import RemoteUserBackend, resolve_identity
from .session import RequestSession, SessionData, SessionManager
from .middleware import (
    OmpassSessionMiddleware,
    TwoFactorGateMiddleware,
    application_path,
    application_root,
    get_request_session,
    request_uri,
)

__all__ = [
    # Gate
    "VERIFIED_SUFFIX",
    "RELAY_STATE_KEY",
    "AUTH_PATH",
    "CALLBACK_PATH",
    "CONFIG_PATH",
    "BypassPolicy",
    "EmergencyOverride",
    "TwoFactorGate",
    "VerificationState",
    "build_relay_state",
    "emergency_override",
    "verification_state",
    "verified_flag_key",
    # Identity
    "RemoteUserBackend",
    "resolve_identity",
    # Session management
    "RequestSession",
    "SessionData",
    "SessionManager",
    # Middleware
    "OmpassSessionMiddleware",
    "TwoFactorGateMiddleware",
    "application_path",
    "application_root",
    "get_request_session",
    "request_uri",
]
