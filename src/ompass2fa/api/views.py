"""
Error pages for the OMPASS endpoints.

Pages are plain HTML; clients asking for JSON get the view model instead.
"""

from __future__ import annotations

from html import escape
from string import Template

from fastapi import Request, Response
from fastapi.responses import HTMLResponse, JSONResponse

from ..core import get_security_headers
from ..models import AuthPageState

PAGE_TEMPLATE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>$title</title>
  <style>
    body { font-family: sans-serif; margin: 4em auto; max-width: 36em; color: #222; }
    .error { border-left: 4px solid #c0392b; padding: 0.5em 1em; background: #fbeeed; }
    .meta { color: #666; font-size: 0.9em; }
  </style>
</head>
<body>
  <h1>$title</h1>
  <p class="error">$message</p>
  <p class="meta">User: $username</p>
  <p><a href="$retry_url">Try again</a> &middot; <a href="$home_url">Back to the application</a></p>
</body>
</html>
""")


def wants_json(request: Request) -> bool:
    """The client prefers JSON over HTML."""
    accept = request.headers.get("accept", "")
    return "application/json" in accept and "text/html" not in accept


def render_error_page(
    request: Request,
    title: str,
    state: AuthPageState,
    status_code: int,
    retry_url: str,
    home_url: str,
) -> Response:
    """Render the error view for ``state``."""
    headers = get_security_headers()

    if wants_json(request):
        return JSONResponse(
            content=state.model_dump(by_alias=True),
            status_code=status_code,
            headers=headers,
        )

    html = PAGE_TEMPLATE.substitute(
        title=escape(title),
        message=escape(state.error_message or ""),
        username=escape(state.username or "-"),
        retry_url=escape(retry_url, quote=True),
        home_url=escape(home_url, quote=True),
    )
    return HTMLResponse(content=html, status_code=status_code, headers=headers)
