"""
Connector API routes — Google OAuth authorize redirect and callback.

Route prefix: /auth/google
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session
from auth.identity import resolve_user_by_email
from auth.oauth_state import create_state, verify_state
from config.settings import config
from connectors.google import GoogleOAuthClient, get_oauth_client
from connectors.token_manager import upsert_tokens
from utils.errors import BrokerError, PersistenceError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["oauth"])


@router.get("")
async def authorize(
    client: GoogleOAuthClient = Depends(get_oauth_client),
) -> RedirectResponse:
    """Send the browser to Google's consent screen."""
    auth_url = client.build_authorization_url(state=create_state())
    return RedirectResponse(auth_url, status_code=status.HTTP_302_FOUND)


@router.get("/callback")
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    session: AsyncSession = Depends(db_session),
    client: GoogleOAuthClient = Depends(get_oauth_client),
) -> Response:
    """
    OAuth callback — Google redirects here after consent.

    Exchanges the code, binds the Google account to an application user by
    email and stores the token set.  Any failure leaves nothing persisted
    and answers with a plain-text error.

    Besides the 401 (unknown account) and 500 (exchange, profile or store
    failure) answers, a forged or expired ``state``, a provider ``error``
    parameter, or a missing ``code`` is a client error and gets 400, a
    status outside the usual 401/500 set for this endpoint.
    """
    try:
        verify_state(state)
        if error or not code:
            logger.warning("OAuth callback without code (provider error: %s)", error or "none")
            return PlainTextResponse(
                "Authorization was not granted.",
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        tokens = await client.exchange_code(code)
        email = await client.fetch_profile_email(tokens)
        user_id = await resolve_user_by_email(session, email)

        await upsert_tokens(user_id, tokens, db_session=session)
        try:
            await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    except BrokerError as exc:
        await session.rollback()
        log = logger.warning if exc.status_code < 500 else logger.error
        log("OAuth callback failed (%s): %s", type(exc).__name__, exc.detail)
        return PlainTextResponse(exc.message, status_code=exc.status_code)

    logger.info("Google account linked for user %s", user_id)
    return RedirectResponse(config.frontend_url, status_code=status.HTTP_302_FOUND)
