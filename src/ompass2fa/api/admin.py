"""
OMPASS configuration endpoints for administrators.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..auth import CONFIG_PATH
from ..core import (
    get_logger,
    AuthenticatorAPIError,
    AuthenticatorError,
    sanitize_error_message,
)
from ..models import (
    ConfigUpdateRequest,
    ConfigView,
    ConnectionSettings,
    ConnectionTestResult,
    Language,
    OmpassConfiguration,
)
from ..services import ClientCache, ConfigurationProvider, InMemoryConfigurationProvider
from .dependencies import get_client_cache, get_config_provider, require_admin

router = APIRouter(prefix=CONFIG_PATH, tags=["configuration"])
logger = get_logger(__name__)

CONNECTION_TEST_USERNAME = "__connection_test__"

# An API error answer still proves the server is reachable
REACHABLE_STATUS_CODES = {400, 401, 404}


@router.get(
    "/",
    response_model=ConfigView,
    summary="Get OMPASS configuration",
    description="Current OMPASS configuration with the secret key masked.",
)
def get_configuration(
    admin: str = Depends(require_admin),
    provider: ConfigurationProvider = Depends(get_config_provider),
) -> ConfigView:
    config = provider.get_configuration()
    if config is None:
        raise HTTPException(status_code=503, detail="OMPASS configuration is not available")
    return ConfigView.from_configuration(config)


@router.post(
    "/",
    response_model=ConfigView,
    summary="Save OMPASS configuration",
    description="Replace the OMPASS connection settings and the 2FA switch.",
)
def save_configuration(
    update: ConfigUpdateRequest,
    admin: str = Depends(require_admin),
    provider: ConfigurationProvider = Depends(get_config_provider),
) -> ConfigView:
    """
    Save the OMPASS settings.

    The shared client notices the change through its fingerprint on the
    next request; no restart is needed.
    """
    if not isinstance(provider, InMemoryConfigurationProvider):
        raise HTTPException(status_code=409, detail="OMPASS configuration is read-only")

    config = provider.update(
        server_url=update.server_url,
        client_id=update.client_id,
        secret_key=update.secret_key,
        enabled=update.enabled,
        language=Language.from_value(update.language).value,
    )

    logger.info("OMPASS 2FA settings saved", admin=admin, enabled=config.enabled)
    return ConfigView.from_configuration(config)


@router.post(
    "/testConnection",
    response_model=ConnectionTestResult,
    summary="Test OMPASS connection",
    description="Check that the OMPASS server answers with the given settings.",
)
def check_connection(
    settings: ConnectionSettings,
    admin: str = Depends(require_admin),
    client_cache: ClientCache = Depends(get_client_cache),
) -> ConnectionTestResult:
    """
    Call the OMPASS server with a throwaway client.

    The shared client is left untouched.
    """
    secret = settings.secret_key.get_secret_value()
    config = OmpassConfiguration(
        server_url=settings.server_url,
        client_id=settings.client_id,
        secret_key=settings.secret_key,
        timeout=10.0,
        max_retries=0,
    )

    try:
        client = client_cache.client_factory(config)
        try:
            client.get_authenticators(CONNECTION_TEST_USERNAME)
        finally:
            client.close()
    except AuthenticatorAPIError as e:
        if e.http_status_code in REACHABLE_STATUS_CODES:
            return ConnectionTestResult(success=True, message="Connection successful (server responded)")
        return ConnectionTestResult(
            success=False,
            message="Server responded with error: " + sanitize_error_message(e.message, [secret]),
        )
    except AuthenticatorError as e:
        return ConnectionTestResult(
            success=False,
            message="Connection failed: " + sanitize_error_message(e.message, [secret]),
        )
    except Exception as e:
        logger.warning("Connection test failed", error=str(e), exc_info=e)
        return ConnectionTestResult(
            success=False,
            message="Connection failed: " + sanitize_error_message(str(e), [secret]),
        )

    return ConnectionTestResult(success=True, message="Connection successful")
