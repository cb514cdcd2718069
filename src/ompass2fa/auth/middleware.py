"""
ASGI middleware for ompass2fa.

``OmpassSessionMiddleware`` attaches the server-side session to each
request and maintains the session cookie. ``TwoFactorGateMiddleware``
redirects authenticated but unverified users to the OMPASS
authentication endpoint.
"""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import HTTPConnection

from ..core import get_logger, get_settings, log_auth_event
from .gate import AUTH_PATH, RELAY_STATE_KEY, TwoFactorGate, build_relay_state
from .identity import resolve_identity
from .session import RequestSession, SessionManager


def application_root(conn: HTTPConnection) -> str:
    """Mount path of the application, without trailing slash."""
    return conn.scope.get("root_path", "").rstrip("/")


def application_path(conn: HTTPConnection) -> str:
    """Request path relative to the application root."""
    root_path = application_root(conn)
    path = conn.scope.get("path", "/")
    if root_path and path.startswith(root_path):
        return path[len(root_path):] or "/"
    return path


def request_uri(conn: HTTPConnection) -> str:
    """
    Request path as sent by the client, percent-encoding intact.

    Includes the mount path. Falls back to the decoded path when the
    server does not provide ``raw_path``.
    """
    root_path = application_root(conn)
    raw_path = conn.scope.get("raw_path")
    if raw_path:
        uri = raw_path.decode("latin-1").split("?", 1)[0]
    else:
        uri = conn.scope.get("path", "/")

    if root_path and not (uri == root_path or uri.startswith(root_path + "/")):
        uri = root_path + uri
    return uri


def get_request_session(conn: HTTPConnection) -> Optional[RequestSession]:
    """Session accessor attached by ``OmpassSessionMiddleware``."""
    return getattr(conn.state, "ompass_session", None)


class OmpassSessionMiddleware(BaseHTTPMiddleware):
    """Loads the session named by the cookie and keeps the cookie current."""

    def __init__(self, app, session_manager: SessionManager):
        super().__init__(app)
        self.session_manager = session_manager
        self.session_settings = get_settings().session

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        cookie_name = self.session_settings.cookie_name
        request_session = RequestSession(self.session_manager, request.cookies.get(cookie_name))
        request.state.ompass_session = request_session

        response = await call_next(request)

        cookie_path = application_root(request) or "/"
        if request_session.created and request_session.session_id:
            response.set_cookie(
                cookie_name,
                request_session.session_id,
                max_age=self.session_manager.timeout_seconds,
                path=cookie_path,
                httponly=True,
                secure=self.session_settings.secure,
                samesite=self.session_settings.same_site,
            )
        elif request_session.should_clear_cookie():
            response.delete_cookie(cookie_name, path=cookie_path)

        return response


class TwoFactorGateMiddleware(BaseHTTPMiddleware):
    """Redirects requests that still need OMPASS 2FA."""

    def __init__(self, app, gate: TwoFactorGate):
        super().__init__(app)
        self.gate = gate
        self.logger = get_logger(__name__)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            redirect = self._enforce(request)
        except Exception as e:
            # Fail open: a broken gate must not lock everybody out
            self.logger.warning(
                "Exception in OMPASS 2FA filter, allowing request through",
                path=request.url.path,
                error=str(e),
                exc_info=e,
            )
            redirect = None

        if redirect is not None:
            return redirect

        return await call_next(request)

    def _enforce(self, request: Request) -> Optional[Response]:
        """
        Evaluate the gate and build the redirect when 2FA is required.

        Returns:
            Redirect response, or None to let the request through
        """
        user = resolve_identity(request)
        path = application_path(request)
        request_session = get_request_session(request)
        session = request_session.get_session(create=False) if request_session else None

        if self.gate.evaluate(user, path, session, request.headers):
            return None

        if request_session is None:
            raise RuntimeError("OmpassSessionMiddleware is not installed")

        session = request_session.get_session(create=True)
        root_path = application_root(request)
        query_string = request.scope.get("query_string", b"").decode("latin-1")
        session.set(RELAY_STATE_KEY, build_relay_state(request_uri(request), query_string))

        log_auth_event(
            self.logger,
            "2fa_required",
            user_id=user,
            success=True,
            details={"path": path},
        )

        return RedirectResponse(url=f"{root_path}{AUTH_PATH}/", status_code=302)
