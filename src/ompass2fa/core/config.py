"""
Configuration management for ompass2fa.

This module handles all application configuration using Pydantic Settings
for environment variable management and validation.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, Field, SecretStr, validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OmpassSettings(BaseSettings):
    """OMPASS authenticator settings."""

    model_config = SettingsConfigDict(
        env_prefix="OMPASS_",
        case_sensitive=False,
        extra="forbid"
    )

    server_url: str = Field(
        default="",
        description="OMPASS server base URL"
    )
    client_id: str = Field(
        default="",
        description="Client ID issued by the OMPASS portal"
    )
    secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Secret key issued by the OMPASS portal"
    )
    enabled: bool = Field(
        default=False,
        description="Enforce OMPASS 2FA for authenticated users"
    )
    language: str = Field(
        default="EN",
        description="Language of the OMPASS authentication page"
    )
    timeout: float = Field(
        default=10.0,
        description="OMPASS API timeout in seconds",
        gt=0,
        le=120
    )
    max_retries: int = Field(
        default=1,
        description="Retries on connection failures and gateway errors",
        ge=0,
        le=5
    )
    bypass: bool = Field(
        default=False,
        validation_alias=AliasChoices("OMPASS_2FA_BYPASS", "OMPASS_BYPASS"),
        description="Emergency switch that disables 2FA enforcement"
    )
    admin_users: List[str] = Field(
        default_factory=list,
        description="Identities allowed to change the OMPASS configuration"
    )

    @validator("server_url")
    def strip_server_url(cls, v: str) -> str:
        """Normalize the server URL."""
        return v.strip()


class SessionSettings(BaseSettings):
    """Session cookie settings."""

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        case_sensitive=False,
        extra="forbid"
    )

    cookie_name: str = Field(
        default="OMPASS2FASESSION",
        description="Name of the session cookie"
    )
    timeout: int = Field(
        default=1800,
        description="Session timeout in seconds",
        ge=60,
        le=86400
    )
    secure: bool = Field(
        default=False,
        description="Only send the session cookie over HTTPS"
    )
    same_site: str = Field(
        default="lax",
        description="SameSite attribute of the session cookie"
    )

    @validator("same_site")
    def validate_same_site(cls, v: str) -> str:
        """Validate SameSite attribute."""
        valid_values = {"lax", "strict", "none"}
        if v.lower() not in valid_values:
            raise ValueError(f"Invalid SameSite value: {v}. Must be one of {valid_values}")
        return v.lower()


class HostSettings(BaseSettings):
    """Settings describing the protected host application."""

    model_config = SettingsConfigDict(
        env_prefix="HOST_",
        case_sensitive=False,
        extra="forbid"
    )

    remote_user_header: str = Field(
        default="X-Forwarded-User",
        description="Header carrying the identity set by the authenticating proxy"
    )
    login_path: str = Field(
        default="/login",
        description="Login page of the host application"
    )


class ServerConfig(BaseSettings):
    """Server configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="SERVER_",
        case_sensitive=False,
        extra="forbid"
    )

    host: str = Field(
        default="0.0.0.0",
        description="Server host address"
    )
    port: int = Field(
        default=8080,
        description="Server port",
        ge=1,
        le=65535
    )
    workers: int = Field(
        default=1,
        description="Number of worker processes",
        ge=1,
        le=16
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload in development"
    )


class LoggingConfig(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
        extra="forbid"
    )

    level: str = Field(
        default="INFO",
        description="Logging level"
    )
    format: str = Field(
        default="json",
        description="Log format (json or text)"
    )
    file_path: Optional[str] = Field(
        default=None,
        description="Log file path (optional)"
    )

    @validator("level")
    def validate_level(cls, v: str) -> str:
        """Validate logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()

    @validator("format")
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {"json", "text"}
        if v.lower() not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return v.lower()


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application info
    app_name: str = Field(
        default="ompass2fa",
        description="Application name"
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version"
    )
    app_description: str = Field(
        default="OMPASS two-factor authentication gate for web applications",
        description="Application description"
    )

    # Environment
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Sub-configurations
    ompass: OmpassSettings = Field(default_factory=OmpassSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    host: HostSettings = Field(default_factory=HostSettings)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @validator("environment")
    def validate_environment(cls, v: str) -> str:
        """Validate environment."""
        valid_envs = {"development", "staging", "production", "testing"}
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def reload_settings() -> Settings:
    """Reload settings from environment."""
    global settings
    settings = Settings()
    return settings
