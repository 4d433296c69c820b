"""Plain record types consumed and produced by the pure engine.

These carry no storage behaviour. The ORM models convert themselves into
these via ``to_entry()``/``to_slot()``/... so the calculators never touch a
session.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ClockAction(str, Enum):
    """The four ordered transitions of an employee's day."""

    CLOCK_IN_WORK = "CLOCK_IN_WORK"
    CLOCK_OUT_BREAK = "CLOCK_OUT_BREAK"
    CLOCK_IN_BREAK = "CLOCK_IN_BREAK"
    CLOCK_OUT_DAY = "CLOCK_OUT_DAY"


class ClockState(str, Enum):
    """Where an employee is in their day, derived from today's records."""

    NO_RECORD = "NO_RECORD"
    WORKING = "WORKING"
    ON_BREAK = "ON_BREAK"
    WORKING_AFTER_BREAK = "WORKING_AFTER_BREAK"
    DAY_COMPLETE = "DAY_COMPLETE"


class DayStatus(str, Enum):
    """Attendance classification of one employee-day."""

    WEEKEND = "Weekend"
    NO_SCHEDULE = "NoSchedule"
    ABSENT = "Absent"
    PRESENT = "Present"
    LATE = "Late"
    LEAVE = "Leave"


class LeaveKind(str, Enum):
    DAY_OFF = "day_off"
    SIL = "sil"
    EMERGENCY = "emergency"


class PayrollStatus(str, Enum):
    PAID = "Paid"
    DELAYED = "Delayed"
    UNPAID = "Unpaid"


@dataclass(frozen=True)
class ClockEntry:
    """One work segment (time-in/time-out pair) of a business day."""

    record_id: UUID | None
    time_in: datetime | None
    time_out: datetime | None
    created_at: datetime

    @property
    def is_open(self) -> bool:
        return self.time_in is not None and self.time_out is None


@dataclass(frozen=True)
class ScheduleSlot:
    """Scheduled working hours for one date."""

    work_date: date
    start_time: time
    end_time: time


@dataclass(frozen=True)
class LeaveDay:
    leave_date: date
    kind: LeaveKind


@dataclass(frozen=True)
class RaiseRule:
    """A percentage raise on the daily rate, active over an inclusive range."""

    name: str
    raise_percentage: Decimal
    start_date: date
    end_date: date
    is_active: bool = True

    def applies_on(self, day: date) -> bool:
        return self.is_active and self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class EmployeeProfile:
    """The employee fields the engine reads."""

    employee_id: UUID
    full_name: str
    hire_date: date | None
    birth_date: date | None
    daily_rate: Decimal | None
    position: str | None = None
    branch: str | None = None
    day_off_balance: int = 3
    sil_balance: int = 0
