from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TimestampIds:
    """Millisecond timestamps that are strictly increasing for this instance."""

    def __init__(self, clock: Clock = utc_now):
        self.clock = clock
        self._last = 0

    def next(self) -> int:
        value = int(self.clock().timestamp() * 1000)
        if value <= self._last:
            value = self._last + 1
        self._last = value
        return value
