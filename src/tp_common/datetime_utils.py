"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone

_SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def days_ago(days: int, now: datetime | None = None) -> datetime:
    """Return the instant `days` whole days before `now` (default: utc_now())."""
    return (now or utc_now()) - timedelta(days=days)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Floor of elapsed days from start to end; negative spans clamp to 0."""
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // _SECONDS_PER_DAY)
