"""
Map a Google account back to an application user.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User
from utils.errors import UserNotFound

logger = logging.getLogger(__name__)


async def resolve_user_by_email(session: AsyncSession, email: str) -> uuid.UUID:
    """
    Return the ``user_id`` whose stored email equals *email* exactly.

    The comparison is case-sensitive, as stored by the identity service.
    Raises ``UserNotFound`` when no row matches or the lookup fails.
    """
    try:
        result = await session.execute(
            select(User.user_id).where(User.email == email)
        )
        user_id = result.scalar_one_or_none()
    except SQLAlchemyError as exc:
        logger.error("User lookup by email failed: %s", exc)
        raise UserNotFound("User lookup failed") from exc

    if user_id is None:
        raise UserNotFound(f"No user with email {email}")
    return user_id
