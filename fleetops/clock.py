"""Clocks used by the controllers. Tests inject FixedClock."""

from datetime import datetime, timedelta

from dateutil import tz


def to_naive(value: datetime) -> datetime:
    """
    Drop the offset from an aware datetime after converting it to UTC.

    Every timestamp in the fleet is naive; naive values pass through.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(tz.UTC).replace(tzinfo=None)


class SystemClock:
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self):
        return self.now().date()


class FixedClock(SystemClock):
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        """Move forward by a timedelta built from kwargs (days=, hours=, ...)."""
        self.current = self.current + timedelta(**kwargs)
        return self.current
