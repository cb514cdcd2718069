"""
ompass2fa - OMPASS two-factor authentication gate for FastAPI applications.

This package adds a second authentication factor, verified by an external
OMPASS server, on top of the login of an existing web application.
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "ompass2fa Contributors"
__license__ = "MIT"
__description__ = "OMPASS two-factor authentication gate for FastAPI applications"

# Core exports
from .core import get_settings, get_logger
from .main import create_app, install_two_factor_gate

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "get_settings",
    "get_logger",
    "create_app",
    "install_two_factor_gate",
]
