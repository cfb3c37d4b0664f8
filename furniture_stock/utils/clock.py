# furniture_stock/utils/clock.py
from datetime import datetime, timedelta, timezone


def to_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; aware values are converted first."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class Clock:
    """Injectable time source for services."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return to_naive_utc(datetime.now(timezone.utc))


class FixedClock(Clock):
    """Returns a controlled time; used by tests and the seed script."""

    def __init__(self, current: datetime):
        self._current = to_naive_utc(current)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        self._current = to_naive_utc(current)

    def advance(self, **kwargs) -> datetime:
        self._current = self._current + timedelta(**kwargs)
        return self._current
