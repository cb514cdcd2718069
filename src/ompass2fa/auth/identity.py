"""
Identity of the primary login.

The gate does not authenticate anybody; it reads the identity the host
application established. Hosts using Starlette's ``AuthenticationMiddleware``
get it from ``request.user``; the bundled ``RemoteUserBackend`` trusts a
header set by an authenticating reverse proxy.
"""

from __future__ import annotations

from typing import Optional, Tuple

from starlette.authentication import (
    AuthCredentials,
    AuthenticationBackend,
    BaseUser,
    SimpleUser,
)
from starlette.requests import HTTPConnection


class RemoteUserBackend(AuthenticationBackend):
    """Authenticates requests from a trusted identity header."""

    def __init__(self, header_name: str = "X-Forwarded-User"):
        self.header_name = header_name

    async def authenticate(
        self, conn: HTTPConnection
    ) -> Optional[Tuple[AuthCredentials, BaseUser]]:
        username = conn.headers.get(self.header_name, "").strip()
        if not username:
            return None
        return AuthCredentials(["authenticated"]), SimpleUser(username)


def resolve_identity(conn: HTTPConnection) -> Optional[str]:
    """
    Return the id of the authenticated user, or None for anonymous traffic.

    Works without any authentication middleware installed.
    """
    user = conn.scope.get("user")
    if user is None:
        return None

    if isinstance(user, str):
        return user or None

    if not getattr(user, "is_authenticated", False):
        return None

    # BaseUser.identity raises NotImplementedError unless overridden
    for attribute in ("identity", "display_name"):
        try:
            value = getattr(user, attribute, None)
        except NotImplementedError:
            continue
        if value:
            return str(value)

    return None
