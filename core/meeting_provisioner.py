"""
Meeting provisioner — create a Google Calendar event with a Meet link.

Two modes:
  • ``live``  — insert the event on the user's primary calendar and return
    the conference join link Google issues.
  • ``stub``  — skip the provider call and return a fixed placeholder link.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

from config.settings import config
from connectors.google import call_with_credentials
from utils.errors import ProvisioningError
from utils.schemas import ProviderTokenSet

logger = logging.getLogger(__name__)

MODES = ("live", "stub")


class MeetingProvisioner:
    def __init__(
        self,
        mode: str = "live",
        summary: str = "Mentorship Session",
        duration_minutes: int = 30,
        placeholder_link: str = "https://meet.google.com/placeholder",
    ) -> None:
        if mode not in MODES:
            raise ValueError(f"Unknown provisioning mode {mode!r}; expected one of {MODES}")
        self.mode = mode
        self.summary = summary
        self.duration = timedelta(minutes=duration_minutes)
        self.placeholder_link = placeholder_link

    def build_event(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Build the event body: starts now, lasts ``duration``, and asks Google
        to attach a Meet conference.  The ``requestId`` is unique per call.
        """
        start = now or datetime.now(timezone.utc)
        end = start + self.duration
        return {
            "summary": self.summary,
            "start": {"dateTime": start.isoformat()},
            "end": {"dateTime": end.isoformat()},
            "conferenceData": {
                "createRequest": {
                    "requestId": f"meet-{time.time_ns()}-{secrets.token_hex(4)}",
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            },
        }

    async def create_meeting(self, tokens: ProviderTokenSet) -> str:
        """
        Create the meeting and return its join link.

        Raises
        ------
        ProvisioningError
            If the calendar call fails or the created event has no link.
        """
        if self.mode == "stub":
            logger.info("Meet provisioning in stub mode — returning placeholder link")
            return self.placeholder_link

        event = self.build_event()

        def _insert(service: Any) -> Dict[str, Any]:
            return (
                service.events()
                .insert(calendarId="primary", body=event, conferenceDataVersion=1)
                .execute()
            )

        try:
            created = await call_with_credentials(tokens, _insert)
        except Exception as exc:
            logger.error("Calendar event insert failed: %s", exc)
            raise ProvisioningError(str(exc)) from exc

        link = _extract_join_link(created)
        if not link:
            logger.error("Event %s was created without a Meet link", created.get("id"))
            raise ProvisioningError("Created event carries no Meet link")

        logger.info("Created Meet event %s", created.get("id"))
        return link


def _extract_join_link(event: Dict[str, Any]) -> Optional[str]:
    if event.get("hangoutLink"):
        return event["hangoutLink"]
    for entry in (event.get("conferenceData") or {}).get("entryPoints", []):
        if entry.get("entryPointType") == "video" and entry.get("uri"):
            return entry["uri"]
    return None


@lru_cache(maxsize=1)
def get_meeting_provisioner() -> MeetingProvisioner:
    """FastAPI dependency — provisioner configured from settings."""
    return MeetingProvisioner(
        mode=config.meet_mode,
        summary=config.meeting_summary,
        duration_minutes=config.meeting_duration_minutes,
        placeholder_link=config.meet_placeholder_link,
    )
