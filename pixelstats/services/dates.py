"""
Date keys and day-boundary arithmetic.

Every date in the store namespace is a UTC calendar date. Archive names,
purge targets and rollover detection all go through this module so the
convention is applied in one place.
"""

from datetime import datetime, timedelta, timezone

FRESHNESS_WINDOW = timedelta(hours=1, minutes=30)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def date_key_of(dt: datetime) -> str:
    """Return the ``YYYYMMDD`` archive key for the UTC date of *dt*."""
    return as_utc(dt).strftime("%Y%m%d")


def days_before_key(now: datetime, days: int) -> str:
    """Archive key of the date *days* before *now*."""
    return date_key_of(as_utc(now) - timedelta(days=days))


def did_rollover_occur(prev: datetime, now: datetime) -> bool:
    """True when *prev* and *now* fall on different UTC calendar dates."""
    return as_utc(prev).date() != as_utc(now).date()


def is_fresh(prev: datetime | None, now: datetime, window: timedelta = FRESHNESS_WINDOW) -> bool:
    """Whether a sample taken at *prev* is recent enough to diff against."""
    if prev is None:
        return False
    return as_utc(prev) >= as_utc(now) - window


def to_ms(dt: datetime) -> int:
    return int(as_utc(dt).timestamp() * 1000)


def from_ms(ms: int | float) -> datetime:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)


def hour_key_of(dt: datetime) -> str:
    """``YYYYMMDDHH`` — run key for hourly jobs."""
    return as_utc(dt).strftime("%Y%m%d%H")
