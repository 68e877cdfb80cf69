"""
REST API routes — liveness, Meet provisioning, link status.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id, get_optional_user_id
from connectors.token_manager import has_tokens, load_tokens
from core.meeting_provisioner import MeetingProvisioner, get_meeting_provisioner
from utils.errors import ProviderNotLinked
from utils.schemas import CheckAuthResponse, ErrorResponse, MeetingResponse

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_RESPONSES: Dict = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def read_root() -> str:
    return "Backend is up and running!"


@router.post(
    "/api/create-google-meet",
    response_model=MeetingResponse,
    responses=_ERROR_RESPONSES,
)
async def create_google_meet(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
    provisioner: MeetingProvisioner = Depends(get_meeting_provisioner),
) -> MeetingResponse:
    """
    Create a 30-minute Meet-backed event on the caller's primary calendar.

    Every call creates a new event; nothing ties repeated calls together.
    """
    tokens = await load_tokens(user_id, db_session=session)
    if tokens is None:
        raise ProviderNotLinked(f"User {user_id} has not linked Google")

    meet_link = await provisioner.create_meeting(tokens)
    logger.info("Meet created for user %s", user_id)
    return MeetingResponse(meetLink=meet_link)


@router.get("/api/check-auth", response_model=CheckAuthResponse)
async def check_auth(
    user_id: Optional[str] = Depends(get_optional_user_id),
    session: AsyncSession = Depends(db_session),
) -> CheckAuthResponse:
    """Report whether the caller has a stored Google token set."""
    if user_id is None:
        return CheckAuthResponse(authenticated=False)
    return CheckAuthResponse(
        authenticated=await has_tokens(user_id, db_session=session)
    )
