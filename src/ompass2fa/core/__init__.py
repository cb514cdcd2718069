"""
Core modules for ompass2fa.

This package contains the core infrastructure components including
configuration, exceptions, logging, and security utilities.
"""

from __future__ import annotations

from .config import Settings, get_settings, reload_settings
from .exceptions import (
    Ompass2FAError,
    ConfigurationError,
    ConfigurationUnavailableError,
    ValidationError,
    AuthorizationError,
    VerificationError,
    AuthenticatorError,
    AuthenticatorAPIError,
    AuthenticatorTransportError,
    TimeoutError,
    get_error_message,
)
from .logging import (
    get_logger,
    setup_logging,
    log_auth_event,
    log_api_call,
    log_error,
    log_security_event,
    LoggerMixin,
    RequestLoggingContext,
)
from .security import (
    generate_session_id,
    generate_request_id,
    is_basic_auth,
    is_safe_redirect_target,
    compute_config_fingerprint,
    mask_sensitive_data,
    sanitize_error_message,
    get_security_headers,
)

__all__ = [
    # Configuration
    "Settings",
    "get_settings",
    "reload_settings",
    # Exceptions
    "Ompass2FAError",
    "ConfigurationError",
    "ConfigurationUnavailableError",
    "ValidationError",
    "AuthorizationError",
    "VerificationError",
    "AuthenticatorError",
    "AuthenticatorAPIError",
    "AuthenticatorTransportError",
    "TimeoutError",
    "get_error_message",
    # Logging
    "get_logger",
    "setup_logging",
    "log_auth_event",
    "log_api_call",
    "log_error",
    "log_security_event",
    "LoggerMixin",
    "RequestLoggingContext",
    # Security
    "generate_session_id",
    "generate_request_id",
    "is_basic_auth",
    "is_safe_redirect_target",
    "compute_config_fingerprint",
    "mask_sensitive_data",
    "sanitize_error_message",
    "get_security_headers",
]
