"""
FastAPI dependencies shared by the OMPASS routers.

Components are owned by the application (``app.state``) rather than by
module globals, so each app or test harness gets its own instances.
"""

from __future__ import annotations

from typing import Optional, Set

from fastapi import HTTPException, Request

from ..auth import resolve_identity
from ..core import get_logger, log_security_event
from ..services import ClientCache, ConfigurationProvider


def get_config_provider(request: Request) -> ConfigurationProvider:
    """Configuration provider installed on the application."""
    return request.app.state.ompass_config_provider


def get_client_cache(request: Request) -> ClientCache:
    """Client cache installed on the application."""
    return request.app.state.ompass_client_cache


class RequireAdmin:
    """Dependency restricting an endpoint to configured administrators."""

    def __init__(self, admin_users: Optional[Set[str]] = None):
        self.admin_users = admin_users
        self.logger = get_logger(__name__)

    def __call__(self, request: Request) -> str:
        """
        Validate that the current user may administer OMPASS.

        Returns:
            The administrator's user id

        Raises:
            HTTPException: 401 for anonymous users, 403 for non-administrators
        """
        user = resolve_identity(request)
        if user is None:
            raise HTTPException(status_code=401, detail="Authentication required")

        admin_users = self.admin_users
        if admin_users is None:
            admin_users = set(request.app.state.ompass_admin_users)

        if user not in admin_users:
            log_security_event(
                self.logger,
                "insufficient_permissions",
                "medium",
                request.client.host if request.client else "unknown",
                details={"user_id": user, "path": request.url.path},
            )
            raise HTTPException(status_code=403, detail="Administrator permission required")

        return user


require_admin = RequireAdmin()
