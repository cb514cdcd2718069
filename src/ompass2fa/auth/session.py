"""
Session management for ompass2fa.

This module keeps server-side sessions identified by a cookie. Sessions
hold the 2FA verification flag and the relay state, and can be
invalidated and replaced to defeat session fixation.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from ..core import (
    get_logger,
    get_settings,
    generate_session_id,
    log_auth_event,
)


class SessionData(BaseModel):
    """Session data model."""

    session_id: str = Field(..., description="Unique session identifier")
    created_at: datetime = Field(..., description="Session creation time")
    last_accessed: datetime = Field(..., description="Last access time")
    expires_at: datetime = Field(..., description="Session expiration time")
    attributes: Dict[str, Any] = Field(default_factory=dict, description="Session attributes")

    def is_expired(self) -> bool:
        """Check if session is expired."""
        return datetime.now(timezone.utc) >= self.expires_at

    def is_valid(self) -> bool:
        """Check if session is valid (not expired)."""
        return not self.is_expired()

    def refresh(self, timeout_seconds: int) -> None:
        """Refresh session expiration."""
        now = datetime.now(timezone.utc)
        self.last_accessed = now
        self.expires_at = now + timedelta(seconds=timeout_seconds)

    def get(self, key: str, default: Any = None) -> Any:
        """Read a session attribute."""
        return self.attributes.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Write a session attribute."""
        self.attributes[key] = value

    def remove(self, key: str) -> None:
        """Drop a session attribute if present."""
        self.attributes.pop(key, None)


class SessionManager:
    """Keeps sessions in memory and expires them."""

    def __init__(self, timeout_seconds: Optional[int] = None):
        self.settings = get_settings()
        self.logger = get_logger(__name__)
        self.timeout_seconds = timeout_seconds or self.settings.session.timeout

        self._lock = threading.Lock()
        self._sessions: Dict[str, SessionData] = {}

    def create_session(self) -> SessionData:
        """
        Create a new, empty session.

        Returns:
            Created session data
        """
        now = datetime.now(timezone.utc)
        session_data = SessionData(
            session_id=generate_session_id(),
            created_at=now,
            last_accessed=now,
            expires_at=now + timedelta(seconds=self.timeout_seconds),
        )

        with self._lock:
            self._sessions[session_data.session_id] = session_data

        self.logger.debug("Session created", expires_at=session_data.expires_at.isoformat())
        return session_data

    def get_session(self, session_id: str) -> Optional[SessionData]:
        """
        Get session by ID and extend its lifetime.

        Args:
            session_id: Session identifier

        Returns:
            Session data if found and valid, None otherwise
        """
        with self._lock:
            session = self._sessions.get(session_id)
            if not session:
                return None

            if session.is_expired():
                del self._sessions[session_id]
                return None

            session.refresh(self.timeout_seconds)
            return session

    def invalidate_session(self, session_id: str) -> bool:
        """
        Delete a session and everything stored in it.

        Args:
            session_id: Session identifier

        Returns:
            True if session was deleted
        """
        with self._lock:
            session = self._sessions.pop(session_id, None)

        if session:
            log_auth_event(self.logger, "session_invalidated", success=True)
            return True

        return False

    def cleanup_expired_sessions(self) -> int:
        """
        Remove expired sessions.

        Returns:
            Number of expired sessions removed
        """
        with self._lock:
            expired_sessions = [
                session_id for session_id, session in self._sessions.items() if session.is_expired()
            ]
            for session_id in expired_sessions:
                del self._sessions[session_id]

        if expired_sessions:
            self.logger.info("Expired sessions removed", count=len(expired_sessions))

        return len(expired_sessions)

    def get_session_stats(self) -> Dict[str, Any]:
        """
        Get session statistics.

        Returns:
            Dictionary with session statistics
        """
        with self._lock:
            sessions = list(self._sessions.values())

        active_sessions = [s for s in sessions if s.is_valid()]
        return {
            "total_sessions": len(sessions),
            "active_sessions": len(active_sessions),
            "expired_sessions": len(sessions) - len(active_sessions),
        }


class RequestSession:
    """
    Session access for a single request.

    Mirrors the servlet-style ``getSession(create)`` contract and records
    whether the session cookie has to be issued or cleared on the response.
    """

    def __init__(self, manager: SessionManager, session_id: Optional[str] = None):
        self.manager = manager
        self.requested_session_id = session_id
        self._session = manager.get_session(session_id) if session_id else None
        self.created = False
        self.invalidated = False

    @property
    def session_id(self) -> Optional[str]:
        return self._session.session_id if self._session else None

    def get_session(self, create: bool = False) -> Optional[SessionData]:
        """
        Return the current session.

        Args:
            create: Create a session when none exists

        Returns:
            The session, or None when there is none and create is False
        """
        if self._session is None and create:
            self._session = self.manager.create_session()
            self.created = True
        return self._session

    def invalidate(self) -> None:
        """Destroy the current session, if any."""
        if self._session is not None:
            self.manager.invalidate_session(self._session.session_id)
            self._session = None
            self.created = False
        self.invalidated = True

    def should_clear_cookie(self) -> bool:
        """The client holds a cookie for a session that no longer exists."""
        return self._session is None and bool(self.requested_session_id)

