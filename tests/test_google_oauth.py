"""
Tests for the Google OAuth client against a mocked token/userinfo endpoint.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from connectors.google import GoogleOAuthClient, call_with_credentials
from utils.errors import OAuthExchangeError, ProfileFetchError
from utils.schemas import ProviderTokenSet


def _query(url: str) -> dict:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestBuildAuthorizationUrl:
    def test_requests_offline_access_and_consent(self, oauth_client):
        params = _query(oauth_client.build_authorization_url(state="s1"))

        assert params["access_type"] == "offline"
        assert params["prompt"] == "consent"
        assert params["response_type"] == "code"
        assert params["client_id"] == "client-id"
        assert params["redirect_uri"] == "http://testserver/auth/google/callback"
        assert params["state"] == "s1"
        assert "https://www.googleapis.com/auth/calendar" in params["scope"].split()

    def test_consent_can_be_disabled(self, oauth_client):
        params = _query(oauth_client.build_authorization_url(force_consent=False))
        assert "prompt" not in params
        assert "state" not in params

    def test_scope_override(self, oauth_client):
        params = _query(oauth_client.build_authorization_url(scopes=["openid"]))
        assert params["scope"] == "openid"


class TestExchangeCode:
    @pytest.mark.asyncio
    async def test_valid_code_returns_token_set(self, oauth_client):
        before = datetime.now(timezone.utc)
        tokens = await oauth_client.exchange_code("abc123")

        assert tokens.access_token == "AT1"
        assert tokens.refresh_token == "RT1"
        assert tokens.token_type == "Bearer"
        assert before + timedelta(seconds=3590) < tokens.expiry
        assert tokens.expiry <= datetime.now(timezone.utc) + timedelta(seconds=3599)

    @pytest.mark.asyncio
    async def test_rejected_code_raises(self, oauth_client):
        with pytest.raises(OAuthExchangeError):
            await oauth_client.exchange_code("expired-code")

    @pytest.mark.asyncio
    async def test_missing_access_token_raises(self, oauth_client):
        with pytest.raises(OAuthExchangeError, match="no access token"):
            await oauth_client.exchange_code("no-access-token")

    @pytest.mark.asyncio
    async def test_transport_failure_raises(self):
        def _boom(request):
            raise httpx.ConnectError("unreachable", request=request)

        client = GoogleOAuthClient(
            "id", "secret", "http://cb", ["scope"], transport=httpx.MockTransport(_boom)
        )
        with pytest.raises(OAuthExchangeError):
            await client.exchange_code("abc123")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"access_token": "AT", "expires_in": "soon"},
        {"access_token": "AT", "expires_in": [3600]},
        {"access_token": "AT", "expires_in": 10 ** 20},
        {"access_token": "AT", "token_type": 7},
    ])
    async def test_malformed_token_fields_raise(self, body):
        client = GoogleOAuthClient(
            "id", "secret", "http://cb", ["scope"],
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=body)),
        )
        with pytest.raises(OAuthExchangeError, match="Malformed"):
            await client.exchange_code("abc123")

    @pytest.mark.asyncio
    async def test_null_optional_fields_fall_back_to_defaults(self):
        body = {"access_token": "AT", "scope": None, "token_type": None, "expires_in": None}
        client = GoogleOAuthClient(
            "id", "secret", "http://cb", ["calendar", "email"],
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json=body)),
        )
        tokens = await client.exchange_code("abc123")

        assert tokens.scope == "calendar email"
        assert tokens.token_type == "Bearer"
        assert tokens.refresh_token is None


class TestFetchProfileEmail:
    @pytest.mark.asyncio
    async def test_returns_email(self, oauth_client):
        email = await oauth_client.fetch_profile_email(ProviderTokenSet(access_token="AT1"))
        assert email == "a@x.com"

    @pytest.mark.asyncio
    async def test_rejected_token_raises(self, oauth_client):
        with pytest.raises(ProfileFetchError):
            await oauth_client.fetch_profile_email(ProviderTokenSet(access_token="bogus"))

    @pytest.mark.asyncio
    async def test_missing_email_raises(self):
        client = GoogleOAuthClient(
            "id", "secret", "http://cb", ["scope"],
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"id": "1"})),
        )
        with pytest.raises(ProfileFetchError, match="no email"):
            await client.fetch_profile_email(ProviderTokenSet(access_token="AT1"))


class TestCallWithCredentials:
    @pytest.mark.asyncio
    async def test_each_call_gets_its_own_credentials(self):
        seen = []

        def fake_build(api, version, credentials, **kwargs):
            seen.append((api, version, credentials))
            return MagicMock(name=f"service-{credentials.token}")

        with patch("connectors.google.build", side_effect=fake_build):
            r1 = await call_with_credentials(ProviderTokenSet(access_token="AT-u1"), lambda s: s)
            r2 = await call_with_credentials(ProviderTokenSet(access_token="AT-u2"), lambda s: s)

        assert [c.token for _, _, c in seen] == ["AT-u1", "AT-u2"]
        assert seen[0][2] is not seen[1][2]
        assert all(api == "calendar" and version == "v3" for api, version, _ in seen)
        assert r1 is not r2
