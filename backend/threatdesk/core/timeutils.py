# backend/threatdesk/core/timeutils.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC "now", matching how timestamps are stored in the DB."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_event_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a caller-supplied ISO-8601 timestamp and keep its own offset.

    A trailing "Z" is accepted. Naive values are taken as UTC.
    Returns None when the value cannot be parsed.
    """
    value = (value or "").strip()
    if not value:
        return None

    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"

    try:
        dt = datetime.fromisoformat(value)
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_naive_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
