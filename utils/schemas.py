"""
Pydantic schemas shared by the connectors, the provisioner and the API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ProviderTokenSet(BaseModel):
    """
    Token set issued by Google for one user.

    Immutable so the same instance can be handed to concurrent provider
    calls without one request altering another's credentials.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    scope: str = ""
    token_type: str = "Bearer"
    expiry: Optional[datetime] = None


class MeetingResponse(BaseModel):
    meetLink: str


class CheckAuthResponse(BaseModel):
    authenticated: bool


class ErrorResponse(BaseModel):
    error: str
