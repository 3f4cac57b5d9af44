from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

from util.time import utc_iso, utcnow


# Debug toggle: allow more verbose logging locally, but still never log secrets.
_DEBUG_LOG_PAYLOADS = os.getenv("EVENTMINDER_DEBUG_LOG_PAYLOADS", "false").lower() in (
    "1",
    "true",
    "yes",
    "on",
)

# Deny-list of keys that should never be logged raw.
_DENY_KEYS = {
    "body",
    "request_body",
    "headers",
    "authorization",
    "token",
    "password",
    "secret",
    "jwt_secret",
    "database_url",
}


def get_logger(component: str) -> logging.Logger:
    """JSONL (message-only) logger for a component, without duplicate propagation."""
    logger = logging.getLogger(component)
    if not logger.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(h)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def _truncate_str(s: str, max_len: int = 800) -> str:
    return s if len(s) <= max_len else s[:max_len] + "...<truncated>"


def _sanitize_value(v: Any, depth: int = 0, max_depth: int = 3) -> Any:
    """
    Best-effort sanitizer to avoid huge logs and accidental leakage.
    Note: top-level deny-list keys are handled by log_event() itself.
    """
    if depth > max_depth:
        return "<max_depth>"

    if v is None or isinstance(v, (int, float, bool)):
        return v

    if isinstance(v, str):
        return _truncate_str(v)

    if isinstance(v, list):
        return [_sanitize_value(x, depth + 1, max_depth) for x in v[:50]]

    if isinstance(v, dict):
        out: dict[str, Any] = {}
        for k, vv in v.items():
            lk = str(k).lower()
            if lk in _DENY_KEYS:
                out[str(k)] = "<redacted>"
            else:
                out[str(k)] = _sanitize_value(vv, depth + 1, max_depth)
        return out

    return _truncate_str(str(v))


def log_event(
    logger: logging.Logger,
    *,
    level: str,
    event: str,
    msg: str,
    **fields: Any,
) -> None:
    payload: dict[str, Any] = {
        "ts": utc_iso(utcnow()),
        "level": level,
        "component": logger.name,
        "event": event,
        "msg": msg,
    }

    safe_fields: dict[str, Any] = {}
    for k, v in fields.items():
        lk = str(k).lower()

        # Never log deny-list fields in normal drift.
        if lk in _DENY_KEYS and not _DEBUG_LOG_PAYLOADS:
            continue

        # Even in debug, do not log raw deny-list values.
        if lk in _DENY_KEYS:
            safe_fields[k] = "<redacted>"
            continue

        safe_fields[k] = _sanitize_value(v)

    payload.update(safe_fields)

    line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))

    lvl = (level or "").upper()
    if lvl == "ERROR":
        logger.error(line)
    elif lvl == "WARN" or lvl == "WARNING":
        logger.warning(line)
    else:
        logger.info(line)
