"""
Logging configuration with credential redaction.

OAuth tokens, authorization codes and client secrets must never reach the
log stream.  ``RedactingFilter`` is installed on every root handler and on
uvicorn's own handlers (its access log does not propagate to root), and
scrubs both structured arguments (dicts, pydantic models) and free text
(``Bearer …`` headers, ``access_token=…`` fragments, JSON snippets inside
exception messages).
"""

from __future__ import annotations

import copy
import logging
import re
import sys
from typing import Any, Dict

from pydantic import BaseModel
from uvicorn.config import LOGGING_CONFIG

REDACTED = "***"

SENSITIVE_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "id_token",
        "client_secret",
        "code",
        "authorization",
    }
)

_BEARER_RE = re.compile(r"(?i)\b(bearer)\s+[A-Za-z0-9._~+/=-]+")
_KEY_VALUE_RE = re.compile(
    r"(?i)(['\"]?\b(?:access_token|refresh_token|id_token|client_secret|code)\b['\"]?\s*[:=]\s*['\"]?)"
    r"[^'\"&\s,}]+"
)


def redact_text(text: str) -> str:
    text = _BEARER_RE.sub(lambda m: f"{m.group(1)} {REDACTED}", text)
    return _KEY_VALUE_RE.sub(lambda m: f"{m.group(1)}{REDACTED}", text)


def redact(value: Any) -> Any:
    """Return a copy of *value* with credential fields masked."""
    if isinstance(value, BaseModel):
        return redact(value.model_dump())
    if isinstance(value, dict):
        return {
            k: (REDACTED if isinstance(k, str) and k.lower() in SENSITIVE_KEYS and v else redact(v))
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(redact(v) for v in value)
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, BaseException):
        return redact_text(str(value))
    return value


class RedactingFilter(logging.Filter):
    """Mask credentials in a record's message and arguments."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_text(record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = redact(record.args)
            else:
                record.args = tuple(redact(a) for a in record.args)
        return True


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("httpcore", "httpx", "urllib3", "googleapiclient.discovery_cache"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)

    for name in (None, "uvicorn", "uvicorn.error", "uvicorn.access"):
        for handler in logging.getLogger(name).handlers:
            if not any(isinstance(f, RedactingFilter) for f in handler.filters):
                handler.addFilter(RedactingFilter())


def uvicorn_log_config() -> Dict[str, Any]:
    """
    uvicorn's default logging config with ``RedactingFilter`` on every
    handler.  The access line carries the full request target, so the
    callback's ``?code=`` would otherwise be written verbatim.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)
    log_config.setdefault("filters", {})["redact"] = {
        "()": "utils.logging_setup.RedactingFilter",
    }
    for handler in log_config["handlers"].values():
        handler.setdefault("filters", []).append("redact")
    return log_config
