"""
Configuration related Pydantic models for ompass2fa.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from ..core.security import mask_sensitive_data


class OmpassConfiguration(BaseModel):
    """
    Snapshot of the OMPASS settings.

    Instances are immutable; the provider swaps whole snapshots when the
    configuration changes.
    """

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    server_url: str = Field("", description="OMPASS server base URL")
    client_id: str = Field("", description="Client ID issued by the OMPASS portal")
    secret_key: SecretStr = Field(SecretStr(""), description="Secret key issued by the OMPASS portal")
    enabled: bool = Field(False, description="Whether 2FA is enforced")
    language: str = Field("EN", description="Language of the OMPASS authentication page")
    timeout: float = Field(10.0, description="OMPASS API timeout in seconds", gt=0)
    max_retries: int = Field(1, description="Retries on connection failures", ge=0)

    def missing_fields(self) -> List[str]:
        """Names of the connection settings that are blank."""
        missing = []
        if not self.server_url.strip():
            missing.append("server_url")
        if not self.client_id.strip():
            missing.append("client_id")
        if not self.secret_key.get_secret_value().strip():
            missing.append("secret_key")
        return missing

    def is_complete(self) -> bool:
        """Check that server URL, client ID and secret are all set."""
        return not self.missing_fields()


class ConfigView(BaseModel):
    """
    Configuration as shown to administrators; the secret is masked.
    """

    server_url: str
    client_id: str
    secret_key: str
    enabled: bool
    language: str
    configured: bool

    @classmethod
    def from_configuration(cls, config: OmpassConfiguration) -> "ConfigView":
        """Build the masked view of a configuration snapshot."""
        secret = config.secret_key.get_secret_value()
        return cls(
            server_url=config.server_url,
            client_id=config.client_id,
            secret_key=mask_sensitive_data(secret) if secret else "",
            enabled=config.enabled,
            language=config.language,
            configured=config.is_complete(),
        )


class ConnectionSettings(BaseModel):
    """
    Connection settings submitted by an administrator.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    server_url: str = Field(..., description="OMPASS server base URL")
    client_id: str = Field(..., description="Client ID")
    secret_key: SecretStr = Field(..., description="Secret key")

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Require an http(s) URL without trailing slash."""
        if not v:
            raise ValueError("OMPASS Server URL is required")
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("URL must start with http:// or https://")
        if v.endswith("/"):
            raise ValueError("URL should not end with a trailing slash")
        return v

    @field_validator("client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        """Require a client ID."""
        if not v:
            raise ValueError("Client ID is required")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: SecretStr) -> SecretStr:
        """Require a secret key."""
        if not v.get_secret_value().strip():
            raise ValueError("Secret Key is required")
        return v


class ConfigUpdateRequest(ConnectionSettings):
    """
    Full configuration update submitted by an administrator.
    """

    enabled: bool = Field(False, description="Whether 2FA is enforced")
    language: Optional[str] = Field("EN", description="Authentication page language")


class ConnectionTestResult(BaseModel):
    """
    Outcome of a connection test against the OMPASS server.
    """

    success: bool
    message: str
