"""UTC date helpers shared by the cashout gate and analytics buckets."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite returns them without tzinfo)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def start_of_day(d: date | datetime) -> datetime:
    """Midnight UTC of the given day."""
    day = ensure_utc(d).date() if isinstance(d, datetime) else d
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def start_of_month(now: datetime | None = None) -> datetime:
    """First instant of the month containing ``now`` (UTC)."""
    if now is None:
        now = utcnow()
    return start_of_day(ensure_utc(now).date().replace(day=1))


def months_ago(months: int, now: datetime | None = None) -> datetime:
    """First instant of the month ``months`` calendar months before ``now``."""
    current = start_of_month(now)
    index = current.year * 12 + (current.month - 1) - months
    return current.replace(year=index // 12, month=index % 12 + 1)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    if now is None:
        now = utcnow()
    return ensure_utc(now) - timedelta(days=days)
