"""
OMPASS API wire models.

Request and response bodies exchanged with the OMPASS server. The server
speaks camelCase JSON; models accept both the alias and the field name.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Language(str, Enum):
    """Languages supported by the OMPASS authentication page."""

    EN = "EN"
    KR = "KR"

    @classmethod
    def from_value(cls, value: object) -> "Language":
        """Resolve a configured language, defaulting to English."""
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                pass
        return cls.EN


class LoginClientType(str, Enum):
    """Kind of client starting the authentication."""

    BROWSER = "BROWSER"


class _OmpassModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)


class AuthStartRequest(_OmpassModel):
    """Body of the start-auth call."""

    username: str = Field(..., min_length=1)
    lang_init: Language = Field(Language.EN, alias="langInit")
    login_client_type: LoginClientType = Field(LoginClientType.BROWSER, alias="loginClientType")


class AuthStartResponse(_OmpassModel):
    """Answer of the start-auth call."""

    ompass_url: str = Field(..., alias="ompassUrl", min_length=1)


class TokenVerifyRequest(_OmpassModel):
    """Body of the verify-token call."""

    username: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)


class TokenVerifyResponse(_OmpassModel):
    """Identity confirmed by the verify-token call."""

    # Compared for exact equality with the callback parameters
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=False)

    username: str = Field("")
    client_id: str = Field("", alias="clientId")
