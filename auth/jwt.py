"""
JWT-style token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256.
The identity service signs application bearer tokens with the shared
secret ``config.jwt_secret`` (env var: ``JWT_SECRET``); this service only
needs to verify them.  ``create_token`` is kept for operational tooling
and tests.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
import uuid
from base64 import b64decode, b64encode
from typing import Any, Dict

from config.settings import config
from utils.errors import Unauthenticated


def sign_payload(payload: Dict[str, Any], secret: str) -> str:
    raw = json.dumps(payload).encode()
    sig = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    return b64encode(raw).decode() + "." + sig


def unsign_payload(token: str, secret: str) -> Dict[str, Any]:
    """
    Check the signature and expiry of *token* and return its payload.

    Raises ``ValueError`` describing the first problem found.
    """
    parts = token.split(".", 1)
    if len(parts) != 2:
        raise ValueError("bad format")
    try:
        raw = b64decode(parts[0], validate=True)
    except ValueError as exc:
        raise ValueError("bad encoding") from exc
    expected_sig = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(parts[1].encode(), expected_sig.encode()):
        raise ValueError("bad signature")
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("bad payload")
    if payload.get("exp", 0) < time.time():
        raise ValueError("token expired")
    return payload


def create_token(user_id: str, expires_in: int | None = None) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    ttl = config.jwt_expiry_seconds if expires_in is None else expires_in
    return sign_payload(
        {"user_id": str(user_id), "exp": int(time.time()) + ttl},
        config.jwt_secret,
    )


def verify_token(token: str) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``Unauthenticated`` on invalid or expired tokens.
    """
    try:
        payload = unsign_payload(token, config.jwt_secret)
        user_id = payload["user_id"]
    except (ValueError, KeyError) as exc:
        raise Unauthenticated(f"Invalid or expired token: {exc}") from exc
    try:
        return str(uuid.UUID(str(user_id)))
    except ValueError as exc:
        raise Unauthenticated("Token carries a malformed user id") from exc
