from datetime import datetime, timedelta, timezone
from typing import Optional

# Stored timestamps are naive UTC, matching what pymongo decodes by default.


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, timezone.utc).replace(tzinfo=None)


def cutoff_for(hours: float, now: Optional[datetime] = None) -> datetime:
    """Start of a trailing window of ``hours`` ending at ``now``"""
    return (now or utcnow()) - timedelta(hours=hours)


def hours_between(earlier: datetime, later: datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 string (a trailing ``Z`` is accepted) into naive UTC.

    Raises ValueError on malformed input.
    """
    return to_naive_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
