from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

_clock_lock = threading.Lock()
_last_issued: datetime | None = None


def now_utc() -> datetime:
    """Return the current time as an aware UTC datetime."""

    return datetime.now(tz=timezone.utc)


def monotonic_now() -> datetime:
    """Return a UTC timestamp that never goes backwards within this process.

    Two calls in the same microsecond are separated by one microsecond so the
    ledger ordering key stays strictly increasing.
    """

    global _last_issued
    with _clock_lock:
        current = now_utc()
        if _last_issued is not None and current <= _last_issued:
            current = _last_issued + timedelta(microseconds=1)
        _last_issued = current
        return current


def ensure_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, assuming naive values are already in UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return int(ensure_utc(value).timestamp() * 1000)


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
