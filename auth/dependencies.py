"""
FastAPI dependencies for authentication.

Provides ``db_session``, ``get_current_user_id`` and
``get_optional_user_id`` dependencies used across the protected routes.
"""

from __future__ import annotations

from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import verify_token
from database.session import get_db_session
from utils.errors import Unauthenticated

_bearer_scheme = HTTPBearer(auto_error=False)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> str:
    """
    Extract and verify the Bearer token, returning the authenticated
    ``user_id`` (UUID string).

    Raises ``Unauthenticated`` when the header is missing, is not a Bearer
    credential, or does not verify.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("Missing Bearer token")
    return verify_token(credentials.credentials)


async def get_optional_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[str]:
    """Like ``get_current_user_id`` but returns ``None`` instead of raising."""
    if credentials is None or not credentials.credentials:
        return None
    try:
        return verify_token(credentials.credentials)
    except Unauthenticated:
        return None
