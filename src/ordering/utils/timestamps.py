"""Timestamp helpers.

Every timestamp the ordering core compares is normalised to an aware UTC
datetime first; naive values are taken to already be UTC.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def parse_timestamp(value) -> datetime | None:
    """Accept a datetime or an ISO-8601 string (a trailing ``Z`` is allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc(datetime.fromisoformat(text))
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def isoformat(value: datetime | None) -> str | None:
    value = to_utc(value)
    return value.isoformat() if value else None
