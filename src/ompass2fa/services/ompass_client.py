"""
HTTP client for the OMPASS authentication server.

This module wraps the OMPASS REST API with a synchronous httpx client
that carries a mandatory timeout, retries on connection failures and
logs every call.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import SecretStr
from pydantic import ValidationError as PydanticValidationError

from ..core import (
    get_logger,
    get_settings,
    AuthenticatorError,
    AuthenticatorAPIError,
    AuthenticatorTransportError,
    TimeoutError,
    log_api_call,
)
from ..models import (
    OmpassConfiguration,
    AuthStartRequest,
    AuthStartResponse,
    TokenVerifyRequest,
    TokenVerifyResponse,
)


class OmpassClient:
    """Client for the OMPASS start-auth and verify-token endpoints."""

    START_AUTH_PATH = "/v2/auth/ompass"
    VERIFY_TOKEN_PATH = "/v2/auth/ompass/token-verification"
    AUTHENTICATORS_PATH = "/v2/authenticators"

    RETRY_ON_STATUS = {502, 503, 504}

    def __init__(
        self,
        base_url: str,
        client_id: str,
        secret_key: Union[SecretStr, str],
        timeout: float = 10.0,
        max_retries: int = 1,
        retry_delay: float = 0.5,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = get_settings()
        self.logger = get_logger(__name__)

        if isinstance(secret_key, str):
            secret_key = SecretStr(secret_key)

        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._secret_key = secret_key

        headers = {
            "User-Agent": f"{self.settings.app_name}/{self.settings.app_version}",
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {secret_key.get_secret_value()}",
            "X-Client-Id": client_id,
        }

        self.client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            headers=headers,
            transport=transport,
        )

    @classmethod
    def from_configuration(
        cls,
        config: OmpassConfiguration,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "OmpassClient":
        """Build a client from a configuration snapshot."""
        return cls(
            base_url=config.server_url,
            client_id=config.client_id,
            secret_key=config.secret_key,
            timeout=config.timeout,
            max_retries=config.max_retries,
            transport=transport,
        )

    def __enter__(self) -> "OmpassClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def start_auth(self, request: AuthStartRequest) -> AuthStartResponse:
        """
        Start an OMPASS authentication for a user.

        Args:
            request: Username, page language and client type

        Returns:
            Response carrying the URL of the OMPASS authentication page

        Raises:
            AuthenticatorError: If the server cannot be reached or rejects the call
        """
        payload = self._request(
            "POST",
            self.START_AUTH_PATH,
            json=request.model_dump(mode="json", by_alias=True),
        )
        return self._parse(AuthStartResponse, payload, self.START_AUTH_PATH)

    def verify_token(self, request: TokenVerifyRequest) -> TokenVerifyResponse:
        """
        Verify the token handed to the callback.

        Args:
            request: Username and token received by the callback

        Returns:
            Username and client ID the token was issued for

        Raises:
            AuthenticatorError: If the server cannot be reached or rejects the call
        """
        payload = self._request(
            "POST",
            self.VERIFY_TOKEN_PATH,
            json=request.model_dump(mode="json", by_alias=True),
            retry_on_status=False,
        )
        return self._parse(TokenVerifyResponse, payload, self.VERIFY_TOKEN_PATH)

    def get_authenticators(self, username: str) -> Dict[str, Any]:
        """List the authenticators registered for a user."""
        return self._request("GET", self.AUTHENTICATORS_PATH, params={"username": username})

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        retry_on_status: bool = True,
    ) -> Dict[str, Any]:
        """
        Make HTTP request with retry logic.

        Connection failures are always retried. Gateway errors are retried
        only when ``retry_on_status`` is set. Token verifications are
        never replayed after the server answered.

        Returns:
            Decoded JSON body with the ``data`` envelope removed

        Raises:
            AuthenticatorAPIError: On non-success HTTP status
            AuthenticatorTransportError: If the request fails after retries
            TimeoutError: If the request times out
        """
        start_time = time.time()

        for attempt in range(self.max_retries + 1):
            try:
                response = self.client.request(method, path, json=json, params=params)
            except httpx.TimeoutException:
                raise TimeoutError(
                    f"OMPASS server did not answer within {self.timeout} seconds",
                    details={"endpoint": path},
                )
            except httpx.ConnectError as e:
                if attempt < self.max_retries:
                    self.logger.warning(
                        "OMPASS connection failed, retrying",
                        attempt=attempt + 1,
                        endpoint=path,
                        error=str(e),
                    )
                    time.sleep(self.retry_delay * (2**attempt))
                    continue
                raise AuthenticatorTransportError(
                    f"Cannot connect to OMPASS server: {e}",
                    details={"endpoint": path},
                )
            except httpx.RequestError as e:
                raise AuthenticatorTransportError(
                    f"OMPASS request failed: {e}",
                    details={"endpoint": path},
                )

            log_api_call(
                self.logger,
                service=self.base_url,
                endpoint=path,
                method=method,
                status_code=response.status_code,
                duration_ms=(time.time() - start_time) * 1000,
            )

            if (
                retry_on_status
                and attempt < self.max_retries
                and response.status_code in self.RETRY_ON_STATUS
            ):
                self.logger.warning(
                    "OMPASS request failed, retrying",
                    attempt=attempt + 1,
                    status_code=response.status_code,
                    endpoint=path,
                )
                time.sleep(self.retry_delay * (2**attempt))
                continue

            return self._handle_response(response, path)

        raise AuthenticatorTransportError("OMPASS request failed", details={"endpoint": path})

    def _handle_response(self, response: httpx.Response, path: str) -> Dict[str, Any]:
        """Decode a response or raise the matching API error."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            message = None
            if isinstance(body, dict):
                message = body.get("message") or body.get("error")
            raise AuthenticatorAPIError(
                f"OMPASS API error ({response.status_code}): {message or response.reason_phrase}",
                http_status_code=response.status_code,
                details={"endpoint": path},
            )

        if not isinstance(body, dict):
            raise AuthenticatorError(
                "OMPASS server returned an unexpected response",
                details={"endpoint": path},
            )

        data = body.get("data")
        return data if isinstance(data, dict) else body

    @staticmethod
    def _parse(model, payload: Dict[str, Any], path: str):
        try:
            return model.model_validate(payload)
        except PydanticValidationError as e:
            raise AuthenticatorError(
                f"OMPASS server returned an unexpected response: {e.error_count()} invalid field(s)",
                details={"endpoint": path},
            )
