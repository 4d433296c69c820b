"""Builders shared by the test modules."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import uuid4
from zoneinfo import ZoneInfo

from dtr_engine.calculators.types import ClockEntry, ScheduleSlot

MANILA = ZoneInfo("Asia/Manila")

# Monday
TODAY = date(2024, 3, 4)


def manila(day: date, hour: int, minute: int = 0, second: int = 0) -> datetime:
    """Aware instant at a wall-clock time in the business timezone."""
    return datetime.combine(day, time(hour, minute, second), tzinfo=MANILA)


def slot(day: date, start: time = time(8), end: time = time(17)) -> ScheduleSlot:
    return ScheduleSlot(work_date=day, start_time=start, end_time=end)


def entry(time_in: datetime | None, time_out: datetime | None = None) -> ClockEntry:
    """Clock entry created at its time-in."""
    return ClockEntry(
        record_id=uuid4(),
        time_in=time_in,
        time_out=time_out,
        created_at=time_in or datetime(2000, 1, 1, tzinfo=MANILA),
    )


def full_day(
    day: date, arrive: tuple[int, int] = (8, 0), leave: tuple[int, int] = (17, 0)
) -> list[ClockEntry]:
    """Two closed segments around a 12:00-13:00 break."""
    return [
        entry(manila(day, *arrive), manila(day, 12)),
        entry(manila(day, 13), manila(day, *leave)),
    ]
