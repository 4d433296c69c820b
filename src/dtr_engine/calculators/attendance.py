"""Day attendance classifier.

Single source of truth for "what happened on day D for employee E". The
live status view, the monthly timesheet and the payroll calculator all go
through the helpers in this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from zoneinfo import ZoneInfo

from dtr_engine.calculators.clock_events import order_records
from dtr_engine.calculators.types import ClockEntry, DayStatus, LeaveDay, ScheduleSlot
from dtr_engine.constants import WEEKEND_DAYS

SECONDS_PER_HOUR = Decimal(3600)
ONE_DECIMAL = Decimal("0.1")


@dataclass(frozen=True)
class DayAttendance:
    work_date: date
    status: DayStatus
    hours_worked: Decimal | None = None


def schedule_bounds(schedule: ScheduleSlot, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Scheduled start and end instants in the business timezone."""
    start = datetime.combine(schedule.work_date, schedule.start_time, tzinfo=tz)
    end = datetime.combine(schedule.work_date, schedule.end_time, tzinfo=tz)
    if end <= start:
        # overnight shift
        end += timedelta(days=1)
    return start, end


def worked_hours(
    records: Sequence[ClockEntry], schedule: ScheduleSlot, tz: ZoneInfo
) -> Decimal:
    """Exact hours worked over the day's segments.

    A still-open second segment is counted up to the scheduled end and no
    further; an open first segment has not produced any countable time yet.
    """
    ordered = order_records(records)
    _, scheduled_end = schedule_bounds(schedule, tz)
    total = timedelta()
    for index, record in enumerate(ordered, start=1):
        end = record.time_out
        if end is None:
            if index < 2:
                continue
            end = scheduled_end
        if end > record.time_in:
            total += end - record.time_in
    return Decimal(int(total.total_seconds())) / SECONDS_PER_HOUR


def lateness(
    records: Sequence[ClockEntry], schedule: ScheduleSlot, tz: ZoneInfo
) -> timedelta:
    """First time-in minus scheduled start (negative when early)."""
    ordered = order_records(records)
    scheduled_start, _ = schedule_bounds(schedule, tz)
    return ordered[0].time_in - scheduled_start


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def classify_day(
    work_date: date,
    schedule: ScheduleSlot | None,
    leave: LeaveDay | None,
    records: Sequence[ClockEntry],
    grace_minutes: int,
    tz: ZoneInfo,
) -> DayAttendance:
    """Classify one employee-day.

    Priority: Leave, then Weekend/NoSchedule when unscheduled, then Absent
    when scheduled with no records, then Late/Present.

    Raises:
        DataIntegrityError: the day's clock records are malformed
    """
    if leave is not None:
        return DayAttendance(work_date, DayStatus.LEAVE)

    if schedule is None:
        status = DayStatus.WEEKEND if is_weekend(work_date) else DayStatus.NO_SCHEDULE
        return DayAttendance(work_date, status)

    if not records:
        return DayAttendance(work_date, DayStatus.ABSENT)

    late_by = lateness(records, schedule, tz)
    status = DayStatus.LATE if late_by > timedelta(minutes=grace_minutes) else DayStatus.PRESENT
    hours = worked_hours(records, schedule, tz).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)
    return DayAttendance(work_date, status, hours)
