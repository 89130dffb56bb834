"""UTC day boundary helpers for quests, check-ins and freshness checks.

Every "today" in the points system is the server's UTC date; client clocks
and profile timezones never decide which quest row an action lands on.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    """The UTC calendar date of ``now`` (default: the current instant)."""
    if now is None:
        now = utc_now()
    return as_utc(now).date()


def yesterday(day: date) -> date:
    return day - timedelta(days=1)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_fresh(created_at: datetime, now: datetime, window_seconds: int) -> bool:
    """True if ``created_at`` lies within ``window_seconds`` before ``now``."""
    return (as_utc(now) - as_utc(created_at)).total_seconds() <= window_seconds
