"""
Security utilities for ompass2fa.

This module provides security-related helpers: identifier generation,
Authorization header inspection, redirect target validation and
masking of secrets in messages.
"""

from __future__ import annotations

import secrets
from typing import Dict, Iterable, Optional
from urllib.parse import urlsplit


def generate_session_id() -> str:
    """
    Generate a secure session ID.

    Returns:
        Random session ID string
    """
    return secrets.token_urlsafe(32)


def generate_request_id() -> str:
    """
    Generate a unique request ID for tracing.

    Returns:
        Random request ID string
    """
    return secrets.token_urlsafe(16)


def is_basic_auth(authorization_header: Optional[str]) -> bool:
    """
    Check whether an Authorization header uses the Basic scheme.

    Args:
        authorization_header: Authorization header value

    Returns:
        True for ``Basic <credentials>``, False for other schemes or no header
    """
    if not authorization_header:
        return False

    parts = authorization_header.strip().split(None, 1)
    return len(parts) >= 1 and parts[0].lower() == "basic"


def is_safe_redirect_target(
    url: Optional[str],
    base_url: Optional[str] = None,
    root_path: str = ""
) -> bool:
    """
    Check if a redirect target stays on this application.

    Relative targets must be absolute paths (``/job/build``); scheme-relative
    (``//host``) and backslash forms are rejected. Absolute URLs are only
    accepted when scheme and host match ``base_url``. When ``root_path`` is
    set the target path must live under it.

    Args:
        url: Candidate redirect target
        base_url: Base URL of the current request (``scheme://host[:port]/``)
        root_path: Mount path of the application

    Returns:
        True if the target is safe to redirect to
    """
    if not url:
        return False

    if "\\" in url or any(ord(char) < 32 or ord(char) == 127 for char in url):
        return False

    try:
        parsed = urlsplit(url)
    except ValueError:
        return False

    if parsed.scheme or parsed.netloc:
        if not base_url:
            return False

        base = urlsplit(base_url)
        if parsed.scheme.lower() not in ("http", "https"):
            return False
        if parsed.scheme.lower() != base.scheme.lower():
            return False
        if parsed.netloc.lower() != base.netloc.lower():
            return False
        path = parsed.path or "/"
    else:
        if not url.startswith("/") or url.startswith("//"):
            return False
        path = parsed.path

    root = root_path.rstrip("/")
    if root and not (path == root or path.startswith(root + "/")):
        return False

    return True


def compute_config_fingerprint(server_url: str, client_id: str, secret_key: str) -> str:
    """
    Compute a cheap change-detection fingerprint for client settings.

    Not a cryptographic digest; it only tells two configurations apart
    within the running process.
    """
    return str(hash((server_url, client_id, secret_key)))


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at the end

    Returns:
        Masked string
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    return "*" * (len(data) - visible_chars) + data[-visible_chars:]


def sanitize_error_message(
    message: str,
    secret_values: Iterable[str] = (),
    max_length: int = 300
) -> str:
    """
    Prepare an exception message for display in a browser.

    Secret values are masked, control characters dropped and the text
    truncated.
    """
    sanitized = message or ""
    for value in secret_values:
        if value:
            sanitized = sanitized.replace(value, mask_sensitive_data(value))

    sanitized = "".join(char for char in sanitized if ord(char) >= 32 or char == " ")
    sanitized = sanitized.strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length].rstrip() + "..."

    return sanitized


def get_security_headers() -> Dict[str, str]:
    """
    Get security headers for HTTP responses.

    Returns:
        Dictionary of security headers
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }
