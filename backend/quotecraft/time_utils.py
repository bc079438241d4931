# Overview: Datetime helpers; documents store UTC-naive datetimes and emit ISO-8601 with "Z".

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a UTC-naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc_naive(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    "2024-07-15"            -> 2024-07-15 00:00 UTC
    "2024-07-15T09:30"      -> naive, taken as UTC
    "2024-07-15T09:30:00Z"  -> UTC
    "...+04:00"             -> shifted to UTC

    Blank input gives None; anything else unparseable raises ValueError.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return _as_utc_naive(datetime.fromisoformat(text))


def coerce_datetime(value) -> Optional[datetime]:
    """datetime or ISO-8601 string in, UTC-naive datetime (or None) out."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return _as_utc_naive(value)
    return parse_iso_datetime(str(value))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """2024-08-14T00:00:00Z; microseconds only when the value has them."""
    if dt is None:
        return None
    return _as_utc_naive(dt).isoformat() + "Z"
