from __future__ import annotations

from datetime import datetime, timedelta, timezone

_TICK = timedelta(microseconds=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def touched_at(created_at: datetime, now: datetime | None = None) -> datetime:
    """Timestamp for an edit: the current time, but never at or before ``created_at``."""
    now = now or utcnow()
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return now if now > created_at else created_at + _TICK
