"""
API routers for ompass2fa.
"""

from __future__ import annotations

from .admin import router as admin_router
from .ompass import router as ompass_router

__all__ = ["admin_router", "ompass_router"]
