"""Clock used by business logic; swapped for a fixed clock in tests"""
from datetime import datetime, timedelta, timezone


class TimeProvider:
    def now(self) -> datetime:
        # Naive UTC, matching how timestamps are stored
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FixedTimeProvider(TimeProvider):
    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **delta) -> None:
        self.current = self.current + timedelta(**delta)


default_time_provider = TimeProvider()


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
