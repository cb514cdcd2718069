"""
View models rendered by the authentication pages.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthPageState(BaseModel):
    """State shown when starting the OMPASS authentication fails."""

    model_config = ConfigDict(populate_by_name=True)

    error_message: Optional[str] = Field(None, serialization_alias="errorMessage")
    username: Optional[str] = None
    relay_state: Optional[str] = Field(None, serialization_alias="relayState")


class CallbackPageState(AuthPageState):
    """State shown when the OMPASS callback cannot be completed."""

    success: bool = False
