"""
Two-factor gate decisions.

This module decides, per request, whether OMPASS 2FA has to be completed
before the request may proceed. The middleware in ``middleware.py`` turns
the decision into a redirect.

A session moves through the states of ``VerificationState`` only as
requests arrive: the gate stores the relay state (pending), the callback
rotates the session and sets the verification flag (verified).
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from ..core import get_logger, get_settings, is_basic_auth
from ..services import ConfigurationProvider

VERIFIED_SUFFIX = "_OMPASS_2FA_VERIFIED"
RELAY_STATE_KEY = "ompass_relay_state"

AUTH_PATH = "/ompassAuth"
CALLBACK_PATH = "/ompassCallback"
CONFIG_PATH = "/ompass2fa-config"


def verified_flag_key(user_id: str) -> str:
    """Session attribute marking ``user_id`` as 2FA-verified."""
    return user_id + VERIFIED_SUFFIX


def build_relay_state(path: str, query_string: Optional[str]) -> str:
    """Destination to return to after 2FA: the path plus query, if any."""
    if query_string:
        return f"{path}?{query_string}"
    return path


class VerificationState(str, Enum):
    """Where a session stands in the 2FA round trip."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_UNVERIFIED = "authenticated_unverified"
    PENDING_EXTERNAL_AUTH = "pending_external_auth"
    VERIFIED = "verified"


def verification_state(user: Optional[str], session: Optional[Mapping[str, Any]]) -> VerificationState:
    """Classify a user/session pair."""
    if user is None:
        return VerificationState.UNAUTHENTICATED
    if session is not None and session.get(verified_flag_key(user)) is True:
        return VerificationState.VERIFIED
    if session is not None and session.get(RELAY_STATE_KEY):
        return VerificationState.PENDING_EXTERNAL_AUTH
    return VerificationState.AUTHENTICATED_UNVERIFIED


class BypassPolicy:
    """Fixed set of request paths exempt from 2FA."""

    SYSTEM_PREFIXES: Tuple[str, ...] = (
        "/logout",
        "/login",
        "/adjuncts",
        "/static",
        "/ajaxBuildQueue",
        "/ajaxExecutors",
        "/descriptorByName",
        "/crumbIssuer",
        "/theme",
    )

    # Must stay exempt or the gate redirects its own endpoints in a loop
    GATE_PREFIXES: Tuple[str, ...] = (
        AUTH_PATH,
        CALLBACK_PATH,
        CONFIG_PATH,
    )

    API_MARKERS: Tuple[str, ...] = (
        "/api/",
        "/cli",
    )

    STATIC_EXTENSIONS: Tuple[str, ...] = (
        ".css",
        ".js",
        ".png",
        ".ico",
        ".gif",
        ".jpg",
        ".jpeg",
        ".svg",
        ".woff",
        ".woff2",
        ".ttf",
        ".eot",
    )

    def matches(self, path: Optional[str]) -> bool:
        """
        Check whether a request path is exempt.

        Args:
            path: Request path relative to the application root

        Returns:
            True if the path needs no 2FA; always False for None
        """
        if path is None:
            return False

        if path.startswith(self.SYSTEM_PREFIXES):
            return True

        if path.startswith(self.GATE_PREFIXES):
            return True

        if any(marker in path for marker in self.API_MARKERS):
            return True

        return path.endswith(self.STATIC_EXTENSIONS)


class EmergencyOverride:
    """
    Process-wide switch that turns 2FA enforcement off.

    Meant for lockout recovery; set from ``OMPASS_2FA_BYPASS`` or the
    ``--bypass-2fa`` command line flag at start-up.
    """

    def __init__(self, enabled: bool = False):
        self._lock = threading.Lock()
        self._enabled = enabled

    def is_enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def set(self, enabled: bool) -> None:
        with self._lock:
            self._enabled = bool(enabled)
        get_logger(__name__).warning("OMPASS 2FA emergency override changed", enabled=bool(enabled))


emergency_override = EmergencyOverride(get_settings().ompass.bypass)


def _authorization_header(headers: Optional[Mapping[str, str]]) -> Optional[str]:
    if headers is None:
        return None

    value = headers.get("authorization")
    if value is not None:
        return value

    for key, header_value in headers.items():
        if key.lower() == "authorization":
            return header_value

    return None


class TwoFactorGate:
    """Decides whether a request may skip OMPASS 2FA."""

    def __init__(
        self,
        provider: ConfigurationProvider,
        policy: Optional[BypassPolicy] = None,
        override: Optional[EmergencyOverride] = None,
    ):
        self.provider = provider
        self.policy = policy or BypassPolicy()
        self.override = override or emergency_override
        self.logger = get_logger(__name__)

    def bypass(
        self,
        user: Optional[str],
        path: Optional[str],
        session: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """
        Decide whether the request skips 2FA.

        Checks run in order and the first match wins: anonymous user,
        2FA disabled or unconfigured, session already verified, exempt
        path, Basic-authenticated API caller, emergency override.

        Args:
            user: Authenticated user id, or None
            path: Request path relative to the application root
            session: Current session, or None when none exists
            headers: Request headers; omit to skip the Basic-auth check

        Returns:
            True if the request may proceed, False if 2FA is required
        """
        if user is None:
            return True

        config = self.provider.get_configuration()
        if config is None or not config.enabled:
            return True

        if session is not None and session.get(verified_flag_key(user)) is True:
            return True

        if self.policy.matches(path):
            return True

        # API token callers authenticate per request and cannot complete 2FA
        if is_basic_auth(_authorization_header(headers)):
            return True

        if self.override.is_enabled():
            return True

        return False

    def evaluate(
        self,
        user: Optional[str],
        path: Optional[str],
        session: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        """
        ``bypass`` under the fail-open policy: errors allow the request.
        """
        try:
            return self.bypass(user, path, session, headers)
        except Exception as e:
            self.logger.warning(
                "Exception in OMPASS 2FA gate, allowing request through",
                user_id=user,
                path=path,
                error=str(e),
                exc_info=e,
            )
            return True
