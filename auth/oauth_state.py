"""
OAuth ``state`` parameter — a signed, expiring nonce that ties the
provider callback back to an authorization redirect issued by us.
"""

from __future__ import annotations

import secrets
import time

from auth.jwt import sign_payload, unsign_payload
from config.settings import config
from utils.errors import InvalidOAuthState


def create_state() -> str:
    return sign_payload(
        {
            "nonce": secrets.token_urlsafe(16),
            "exp": int(time.time()) + config.oauth_state_ttl_seconds,
        },
        config.oauth_state_secret,
    )


def verify_state(state: str | None) -> None:
    """Raise ``InvalidOAuthState`` unless *state* is one of ours and unexpired."""
    if not state:
        raise InvalidOAuthState("Missing OAuth state")
    try:
        unsign_payload(state, config.oauth_state_secret)
    except ValueError as exc:
        raise InvalidOAuthState(f"Invalid or expired OAuth state: {exc}") from exc
