"""
GoogleOAuthClient — OAuth2 web flow for Google Calendar.

Uses Google's OAuth2 authorization-code grant to obtain per-user calendar
access.  The client holds only static configuration; per-user tokens are
always passed in explicitly, never stored on the instance.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Callable, List, Optional, TypeVar
from urllib.parse import urlencode

import httpx
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from pydantic import ValidationError

from config.settings import config
from utils.errors import OAuthExchangeError, ProfileFetchError
from utils.schemas import ProviderTokenSet

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Google OAuth2 endpoints
_GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
_GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
_GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

_DEFAULT_EXPIRES_IN = 3600


class GoogleOAuthClient:
    """OAuth2 client for the Google authorization server."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        scopes: List[str],
        *,
        force_consent: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._redirect_uri = redirect_uri
        self._scopes = tuple(scopes)
        self._force_consent = force_consent
        self._transport = transport

    @property
    def scopes(self) -> List[str]:
        return list(self._scopes)

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def build_authorization_url(
        self,
        state: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        force_consent: Optional[bool] = None,
    ) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes or self._scopes),
            "access_type": "offline",       # gets refresh_token
            "include_granted_scopes": "true",
        }
        if self._force_consent if force_consent is None else force_consent:
            params["prompt"] = "consent"    # refresh_token even for returning users
        if state:
            params["state"] = state
        return f"{_GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderTokenSet:
        """Exchange an authorization code for a token set."""
        try:
            async with self._http() as client:
                resp = await client.post(
                    _GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                        "redirect_uri": self._redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise OAuthExchangeError(
                f"Token endpoint rejected the code ({exc.response.status_code})"
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise OAuthExchangeError(f"Token exchange failed: {exc}") from exc

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise OAuthExchangeError("Token endpoint returned no access token")

        try:
            expires_in = int(data.get("expires_in") or _DEFAULT_EXPIRES_IN)
            return ProviderTokenSet(
                access_token=access_token,
                refresh_token=data.get("refresh_token"),
                scope=data.get("scope") or " ".join(self._scopes),
                token_type=data.get("token_type") or "Bearer",
                expiry=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
            )
        except (ValidationError, TypeError, ValueError, OverflowError) as exc:
            raise OAuthExchangeError(f"Malformed token response: {exc}") from exc

    async def fetch_profile_email(self, tokens: ProviderTokenSet) -> str:
        """Return the email of the Google account the tokens belong to."""
        headers = {"Authorization": f"Bearer {tokens.access_token}"}
        try:
            async with self._http() as client:
                resp = await client.get(_GOOGLE_USERINFO_URL, headers=headers)
                resp.raise_for_status()
                user_info = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProfileFetchError(f"Userinfo call failed: {exc}") from exc

        email = user_info.get("email") if isinstance(user_info, dict) else None
        if not email:
            raise ProfileFetchError("Userinfo response has no email")
        return email


async def call_with_credentials(
    tokens: ProviderTokenSet,
    api_call: Callable[[Any], T],
) -> T:
    """
    Run ``api_call(service)`` against a Calendar v3 service bound to *tokens*.

    A new ``Credentials`` object and service are built for every call, so
    concurrent requests never share credentials.  Only the access token is
    attached; expired tokens are not refreshed here.  The blocking
    ``googleapiclient`` work runs in a worker thread.
    """
    creds = Credentials(token=tokens.access_token)

    def _run() -> T:
        service = build("calendar", "v3", credentials=creds, cache_discovery=False)
        return api_call(service)

    return await asyncio.to_thread(_run)


@lru_cache(maxsize=1)
def get_oauth_client() -> GoogleOAuthClient:
    """FastAPI dependency — the process-wide, read-only OAuth client."""
    return GoogleOAuthClient(
        client_id=config.google_client_id,
        client_secret=config.google_client_secret,
        redirect_uri=config.google_redirect_uri,
        scopes=config.google_scopes,
        force_consent=config.google_force_consent,
    )
