"""
OMPASS authentication endpoints.

``/ompassAuth/`` starts the OMPASS authentication for the current user and
sends the browser to the OMPASS page. ``/ompassCallback/`` is where OMPASS
sends the browser back with a token; a verified token rotates the session
and marks it as 2FA-verified.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Form, Query, Request, Response
from fastapi.responses import RedirectResponse

from ..auth import (
    AUTH_PATH,
    CALLBACK_PATH,
    RELAY_STATE_KEY,
    application_root,
    get_request_session,
    resolve_identity,
    verified_flag_key,
)
from ..core import (
    get_logger,
    get_settings,
    Ompass2FAError,
    is_safe_redirect_target,
    log_auth_event,
    log_error,
    sanitize_error_message,
)
from ..models import (
    AuthPageState,
    AuthStartRequest,
    CallbackPageState,
    Language,
    LoginClientType,
    OmpassConfiguration,
    TokenVerifyRequest,
)
from ..services import ClientCache, ConfigurationProvider
from .dependencies import get_client_cache, get_config_provider
from .views import render_error_page

router = APIRouter(tags=["ompass"])
logger = get_logger(__name__)


def _error_status(error: Exception) -> int:
    return error.status_code if isinstance(error, Ompass2FAError) else 502


def _display_message(prefix: str, error: Exception, config: OmpassConfiguration) -> str:
    """Error text safe to show in the browser."""
    return prefix + sanitize_error_message(str(error), [config.secret_key.get_secret_value()])


def _render(request: Request, title: str, state: AuthPageState, status_code: int) -> Response:
    root_path = application_root(request)
    return render_error_page(
        request,
        title,
        state,
        status_code=status_code,
        retry_url=f"{root_path}{AUTH_PATH}/",
        home_url=f"{root_path}/",
    )


@router.get(
    f"{AUTH_PATH}/",
    summary="Start OMPASS authentication",
    description="Start OMPASS 2FA for the current user and redirect to the OMPASS page.",
)
def start_authentication(
    request: Request,
    provider: ConfigurationProvider = Depends(get_config_provider),
    client_cache: ClientCache = Depends(get_client_cache),
) -> Response:
    """
    Start the OMPASS authentication flow.

    Anonymous users are sent to the login page. On success the browser is
    redirected straight to the OMPASS authentication page; failures are
    rendered as an error page without redirect.
    """
    root_path = application_root(request)

    username = resolve_identity(request)
    if username is None:
        logger.warning("No authenticated user found, redirecting to login page")
        return RedirectResponse(url=root_path + get_settings().host.login_path, status_code=302)

    request_session = get_request_session(request)
    session = request_session.get_session(create=True) if request_session else None

    # Where the user was going before the gate stopped them
    relay_state = session.get(RELAY_STATE_KEY) if session else None
    if not relay_state:
        relay_state = root_path + "/"

    state = AuthPageState(username=username, relay_state=relay_state)

    config = provider.get_configuration()
    if config is None:
        logger.error("OMPASS global configuration is not available")
        state.error_message = "OMPASS configuration is not available. Please contact your administrator."
        return _render(request, "OMPASS Authentication", state, 503)

    language = Language.from_value(config.language)

    try:
        client = client_cache.get_instance()
        auth_response = client.start_auth(
            AuthStartRequest(
                username=username,
                lang_init=language,
                login_client_type=LoginClientType.BROWSER,
            )
        )
    except Exception as e:
        log_error(logger, e, context={"stage": "start_auth"}, user_id=username)
        state.error_message = _display_message("Failed to initiate OMPASS authentication: ", e, config)
        return _render(request, "OMPASS Authentication", state, _error_status(e))

    log_auth_event(
        logger,
        "ompass_auth_started",
        user_id=username,
        success=True,
        details={"language": language.value},
    )
    return RedirectResponse(url=auth_response.ompass_url, status_code=302)


@router.get(
    f"{CALLBACK_PATH}/",
    summary="OMPASS callback",
    description="Verify the OMPASS token and mark the session as 2FA-verified.",
)
def ompass_callback(
    request: Request,
    token: Optional[str] = Query(None),
    username: Optional[str] = Query(None),
    provider: ConfigurationProvider = Depends(get_config_provider),
    client_cache: ClientCache = Depends(get_client_cache),
) -> Response:
    """Handle the browser redirect from OMPASS."""
    return handle_callback(request, token, username, provider, client_cache)


@router.post(
    f"{CALLBACK_PATH}/",
    summary="OMPASS callback (form post)",
    description="Verify the OMPASS token posted as a form.",
)
def ompass_callback_form(
    request: Request,
    token: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    provider: ConfigurationProvider = Depends(get_config_provider),
    client_cache: ClientCache = Depends(get_client_cache),
) -> Response:
    """Handle the form post from OMPASS; query parameters are accepted too."""
    token = token if token is not None else request.query_params.get("token")
    username = username if username is not None else request.query_params.get("username")
    return handle_callback(request, token, username, provider, client_cache)


def handle_callback(
    request: Request,
    token: Optional[str],
    username: Optional[str],
    provider: ConfigurationProvider,
    client_cache: ClientCache,
) -> Response:
    """
    Verify the callback token and complete 2FA.

    Args:
        request: Incoming request
        token: Verification token issued by OMPASS
        username: User the token was issued for
        provider: Configuration provider
        client_cache: Shared OMPASS client cache

    Returns:
        Redirect to the relay destination, or the error page
    """
    state = CallbackPageState(username=username)
    title = "OMPASS Authentication Failed"

    if token is None or not token.strip():
        logger.warning("OMPASS callback received without token parameter")
        state.error_message = "Missing authentication token"
        return _render(request, title, state, 400)

    if username is None or not username.strip():
        logger.warning("OMPASS callback received without username parameter")
        state.error_message = "Missing username"
        return _render(request, title, state, 400)

    token = token.strip()
    username = username.strip()
    state.username = username

    config = provider.get_configuration()
    if config is None:
        logger.error("OMPASS global configuration is not available during callback processing")
        state.error_message = "OMPASS configuration is not available"
        return _render(request, title, state, 503)

    try:
        client = client_cache.get_instance()
        verify_response = client.verify_token(TokenVerifyRequest(username=username, token=token))
    except Exception as e:
        log_error(logger, e, context={"stage": "verify_token"}, user_id=username)
        state.error_message = _display_message("Token verification failed: ", e, config)
        return _render(request, title, state, _error_status(e))

    # The token must have been issued for this user and this client
    verified = (
        verify_response is not None
        and verify_response.username == username
        and verify_response.client_id == config.client_id
    )

    if not verified:
        log_auth_event(
            logger,
            "ompass_2fa_verification_failed",
            user_id=username,
            success=False,
            details={"reason": "response username or clientId mismatch"},
        )
        state.error_message = "Authentication verification failed: credential mismatch"
        return _render(request, title, state, 401)

    request_session = get_request_session(request)
    if request_session is None:
        logger.error("Session support is not installed, cannot complete OMPASS 2FA")
        state.error_message = "Session support is not available"
        return _render(request, title, state, 500)

    old_session = request_session.get_session(create=False)
    destination = old_session.get(RELAY_STATE_KEY) if old_session else None

    # A pre-authentication session must not carry over into the verified state
    request_session.invalidate()
    new_session = request_session.get_session(create=True)
    new_session.set(verified_flag_key(username), True)

    log_auth_event(logger, "ompass_2fa_verified", user_id=username, success=True)

    root_path = application_root(request)
    if not is_safe_redirect_target(destination, base_url=str(request.base_url), root_path=root_path):
        if destination:
            logger.warning("Unsafe relay state replaced by application root", user_id=username)
        destination = root_path + "/"

    return RedirectResponse(url=destination, status_code=302)
