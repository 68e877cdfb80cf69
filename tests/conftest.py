"""
Shared fixtures: in-memory SQLite database, a Google stand-in served by
``httpx.MockTransport``, and an ASGI client wired to both.
"""

import uuid
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from connectors.google import GoogleOAuthClient
from database.models import Base, User

ALICE_ID = uuid.UUID("00000000-0000-0000-0000-000000000042")
ALICE_EMAIL = "a@x.com"

# code → token response issued by the fake Google token endpoint
TOKEN_RESPONSES = {
    "abc123": {
        "access_token": "AT1",
        "refresh_token": "RT1",
        "expires_in": 3599,
        "scope": "https://www.googleapis.com/auth/calendar",
        "token_type": "Bearer",
    },
    "stranger-code": {
        "access_token": "AT-stranger",
        "refresh_token": "RT-stranger",
        "expires_in": 3599,
        "scope": "https://www.googleapis.com/auth/calendar",
        "token_type": "Bearer",
    },
    "no-access-token": {"token_type": "Bearer"},
    # userinfo rejects this access token
    "no-profile-code": {
        "access_token": "AT-noprofile",
        "expires_in": 3599,
        "token_type": "Bearer",
    },
}

# access token → userinfo response
USERINFO_RESPONSES = {
    "AT1": {"id": "1", "email": ALICE_EMAIL},
    "AT-stranger": {"id": "2", "email": "stranger@x.com"},
}


def google_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "oauth2.googleapis.com" and request.url.path == "/token":
        form = parse_qs(request.read().decode())
        code = form.get("code", [""])[0]
        if code in TOKEN_RESPONSES:
            return httpx.Response(200, json=TOKEN_RESPONSES[code])
        return httpx.Response(400, json={"error": "invalid_grant"})

    if request.url.path == "/oauth2/v2/userinfo":
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token in USERINFO_RESPONSES:
            return httpx.Response(200, json=USERINFO_RESPONSES[token])
        return httpx.Response(401, json={"error": "invalid_token"})

    return httpx.Response(404)


@pytest.fixture
def oauth_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://testserver/auth/google/callback",
        scopes=["https://www.googleapis.com/auth/calendar", "https://www.googleapis.com/auth/userinfo.email"],
        transport=httpx.MockTransport(google_handler),
    )


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        session.add(User(user_id=ALICE_ID, email=ALICE_EMAIL, display_name="Alice"))
        await session.commit()
    return factory


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
