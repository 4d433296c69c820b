"""Fixed-timezone business clock.

Schedule boundaries, the break window and the reopen window are all
evaluated in the employer's timezone, never the client's. Services receive a
clock instance instead of calling ``datetime.now()`` so tests can pin time.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo


class BusinessClock:
    """Clock bound to a single business timezone."""

    def __init__(self, tz_name: str = "Asia/Manila"):
        self.tz = ZoneInfo(tz_name)

    def now(self) -> datetime:
        """Current instant, expressed in the business timezone."""
        return datetime.now(self.tz)

    def today(self) -> date:
        """Current calendar date in the business timezone."""
        return self.business_date(self.now())

    def to_business(self, instant: datetime) -> datetime:
        """Convert an aware instant to the business timezone."""
        if instant.tzinfo is None:
            raise ValueError("Naive datetimes are ambiguous; pass an aware instant")
        return instant.astimezone(self.tz)

    def business_date(self, instant: datetime) -> date:
        """Calendar date of an instant in the business timezone."""
        return self.to_business(instant).date()


class FixedClock(BusinessClock):
    """Clock frozen at a given instant (tests and replays)."""

    def __init__(self, instant: datetime, tz_name: str = "Asia/Manila"):
        super().__init__(tz_name)
        self._instant = self.to_business(instant)

    def now(self) -> datetime:
        return self._instant

    def advance(self, **kwargs: float) -> None:
        """Move the frozen instant forward by a timedelta's keyword arguments."""
        self._instant = self._instant + timedelta(**kwargs)

    def set(self, instant: datetime) -> None:
        self._instant = self.to_business(instant)
