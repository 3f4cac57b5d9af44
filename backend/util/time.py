from __future__ import annotations

from datetime import date, datetime, timezone


class TimePolicyError(ValueError):
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def require_utc_aware(dt: datetime, field_name: str) -> datetime:
    """
    Strict policy:
    - dt MUST be timezone-aware
    - converted to UTC
    """
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise TimePolicyError(
            f"{field_name} must be timezone-aware UTC (ISO 8601, e.g. 2025-01-01T00:00:00Z)"
        )
    return dt.astimezone(timezone.utc)


def parse_utc_timestamp(value: str | datetime, field_name: str) -> datetime:
    """
    Parse an ISO 8601 timestamp (``Z`` or explicit offset) into an aware UTC datetime.

    A bare date (YYYY-MM-DD) means midnight UTC. Naive timestamps and unparsable
    strings raise TimePolicyError.
    """
    if isinstance(value, datetime):
        return require_utc_aware(value, field_name)

    if not isinstance(value, str):
        raise TimePolicyError(f"{field_name} must be an ISO 8601 string")

    s = value.strip()
    # Accepts "Z" or "+00:00"
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        if len(s) == 10 and "T" not in s:
            d = date.fromisoformat(s)
            return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
        dt = datetime.fromisoformat(s)
    except ValueError as e:
        raise TimePolicyError(f"{field_name} is not a valid ISO 8601 timestamp") from e
    return require_utc_aware(dt, field_name)


def utc_iso(dt: datetime) -> str:
    # Stable "Z" format for logs and messages.
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
