"""
Token manager — load / store per-user Google tokens.

This is the single interface the routes use to persist the token set
obtained at callback time and to read it back at provisioning time.
One row per user; writes are upserts keyed by ``user_id``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import GoogleToken
from database.session import async_session_factory
from utils.errors import CredentialStoreError, PersistenceError
from utils.schemas import ProviderTokenSet

logger = logging.getLogger(__name__)

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


async def upsert_tokens(
    user_id: str | uuid.UUID,
    token_set: ProviderTokenSet,
    *,
    db_session: Optional[AsyncSession] = None,
) -> None:
    """
    Insert or overwrite the token record for ``user_id``.

    Last write wins for every field, except that a token set without a
    refresh token keeps the one already stored.

    Raises
    ------
    PersistenceError
        If the write (or, for an owned session, the commit) fails.
    """
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        uid = _to_uuid(user_id)
        dialect = session.bind.dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise PersistenceError(f"Unsupported database dialect: {dialect}")

        now = datetime.now(timezone.utc)
        stmt = insert(GoogleToken).values(
            token_id=uuid.uuid4(),
            user_id=uid,
            access_token=token_set.access_token,
            refresh_token=token_set.refresh_token,
            scope=token_set.scope,
            token_type=token_set.token_type,
            expiry=token_set.expiry,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": func.coalesce(
                    stmt.excluded.refresh_token, GoogleToken.refresh_token
                ),
                "scope": stmt.excluded.scope,
                "token_type": stmt.excluded.token_type,
                "expiry": stmt.excluded.expiry,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await session.execute(stmt)

        if own_session:
            await session.commit()
        else:
            await session.flush()
        logger.info("Stored Google tokens for user %s", uid)

    except (SQLAlchemyError, ValueError) as exc:
        logger.error("upsert_tokens failed for user %s: %s", user_id, exc)
        if own_session:
            await session.rollback()
        raise PersistenceError(str(exc)) from exc
    finally:
        if own_session:
            await session.close()


async def load_tokens(
    user_id: str | uuid.UUID,
    *,
    db_session: Optional[AsyncSession] = None,
) -> Optional[ProviderTokenSet]:
    """Return the stored token set for ``user_id``, or None if not linked."""
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        result = await session.execute(
            select(GoogleToken).where(GoogleToken.user_id == _to_uuid(user_id))
        )
        row = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        raise CredentialStoreError(str(exc)) from exc
    finally:
        if own_session:
            await session.close()

    if row is None:
        return None
    return ProviderTokenSet.model_validate(row)


async def has_tokens(
    user_id: str | uuid.UUID,
    *,
    db_session: Optional[AsyncSession] = None,
) -> bool:
    """Check whether ``user_id`` has linked a Google account."""
    own_session = db_session is None
    session = db_session or async_session_factory()
    try:
        result = await session.execute(
            select(GoogleToken.token_id).where(GoogleToken.user_id == _to_uuid(user_id))
        )
        return result.scalar_one_or_none() is not None
    except SQLAlchemyError as exc:
        raise CredentialStoreError(str(exc)) from exc
    finally:
        if own_session:
            await session.close()
