"""
Custom exceptions for ompass2fa.

This module defines all custom exceptions used throughout the application.
Handlers turn them into rendered error views; the client cache and the
authenticator client raise them upward.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class Ompass2FAError(Exception):
    """Base exception for all ompass2fa errors."""

    def __init__(
        self,
        message: str,
        error_type: str = "ompass2fa_error",
        error_code: Optional[str] = None,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary format."""
        error_dict = {
            "message": self.message,
            "type": self.error_type,
        }

        if self.error_code:
            error_dict["code"] = self.error_code

        if self.details:
            error_dict.update(self.details)

        return {"error": error_dict}


class ConfigurationError(Ompass2FAError):
    """Settings are present but incomplete (server URL, client ID or secret blank)."""

    def __init__(
        self,
        message: str = "OMPASS is not configured",
        error_code: Optional[str] = "not_configured",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="configuration_error",
            error_code=error_code,
            status_code=500,
            details=details
        )


class ConfigurationUnavailableError(ConfigurationError):
    """The configuration provider has no configuration at all."""

    def __init__(
        self,
        message: str = "OMPASS configuration is not available",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_code="configuration_unavailable",
            details=details
        )
        self.status_code = 503


class ValidationError(Ompass2FAError):
    """Request validation errors."""

    def __init__(
        self,
        message: str = "Invalid request data",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="invalid_request_error",
            error_code=error_code,
            status_code=400,
            details=details
        )


class AuthorizationError(Ompass2FAError):
    """Authorization related errors."""

    def __init__(
        self,
        message: str = "Insufficient permissions",
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="authorization_error",
            error_code=error_code,
            status_code=403,
            details=details
        )


class VerificationError(Ompass2FAError):
    """Token verification answered, but for another user or client."""

    def __init__(
        self,
        message: str = "Authentication verification failed: credential mismatch",
        error_code: Optional[str] = "credential_mismatch",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="verification_error",
            error_code=error_code,
            status_code=401,
            details=details
        )


class AuthenticatorError(Ompass2FAError):
    """Errors raised while talking to the OMPASS server."""

    def __init__(
        self,
        message: str = "OMPASS server error",
        error_code: Optional[str] = None,
        status_code: int = 502,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_type="authenticator_error",
            error_code=error_code,
            status_code=status_code,
            details=details
        )


class AuthenticatorAPIError(AuthenticatorError):
    """The OMPASS server answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str = "OMPASS API error",
        http_status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_code=error_code,
            status_code=502,
            details=details
        )
        self.http_status_code = http_status_code


class AuthenticatorTransportError(AuthenticatorError):
    """The OMPASS server could not be reached."""

    def __init__(
        self,
        message: str = "OMPASS server is unreachable",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(
            message=message,
            error_code="transport_error",
            details=details
        )


class TimeoutError(AuthenticatorTransportError):
    """Request timeout error."""

    def __init__(
        self,
        message: str = "Request timeout",
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        super().__init__(message=message, details=details)
        self.error_code = "timeout"
        self.status_code = 504


# Error code mappings for common scenarios
ERROR_CODES = {
    "missing_token": "Missing authentication token",
    "missing_username": "Missing username",
    "configuration_unavailable": "OMPASS configuration is not available",
    "not_configured": "OMPASS is not configured",
    "credential_mismatch": "Authentication verification failed: credential mismatch",
    "transport_error": "OMPASS server is unreachable",
    "timeout": "Request timed out",
    "insufficient_permissions": "Insufficient permissions for this operation",
}


def get_error_message(error_code: str) -> str:
    """Get human-readable error message for error code."""
    return ERROR_CODES.get(error_code, "An unknown error occurred")
