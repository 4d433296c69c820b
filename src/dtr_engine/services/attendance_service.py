"""Read-side attendance views built on the day classifier."""

from __future__ import annotations

import calendar
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.calculators.attendance import classify_day
from dtr_engine.calculators.clock_events import (
    break_seconds_remaining,
    current_clock_state,
    order_records,
)
from dtr_engine.calculators.types import ClockEntry, ClockState, DayStatus, LeaveDay, ScheduleSlot
from dtr_engine.clock import BusinessClock
from dtr_engine.errors import DataIntegrityError
from dtr_engine.models import ClockRecord, Employee, LeaveRecord, ScheduleEntry
from dtr_engine.services.clock_service import get_active_employee

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LiveStatus:
    employee_id: UUID
    employee_name: str
    state: ClockState | None
    status: DayStatus | None
    hours_worked: Decimal | None
    last_event_at: datetime | None
    break_seconds_remaining: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class TimesheetRow:
    """One row of a monthly DTR: arrival/departure around the break."""

    work_date: date
    status: DayStatus | None
    hours_worked: Decimal | None = None
    am_arrival: datetime | None = None
    am_departure: datetime | None = None
    pm_arrival: datetime | None = None
    pm_departure: datetime | None = None
    error: str | None = None


@dataclass
class _DayInputs:
    schedules: dict[tuple[UUID, date], ScheduleSlot]
    records: dict[tuple[UUID, date], list[ClockEntry]]
    leaves: dict[tuple[UUID, date], LeaveDay]


class AttendanceService:
    """Live status, timesheets and attendance counts."""

    def __init__(self, session: AsyncSession, clock: BusinessClock, grace_minutes: int):
        self.session = session
        self.clock = clock
        self.grace_minutes = grace_minutes

    async def live_status(self, today: date | None = None) -> list[LiveStatus]:
        """Every active employee's current state and today's classification."""
        today = today or self.clock.today()
        now = self.clock.now()
        employees = await self._active_employees()
        inputs = await self._load(today, today, [e.employee_id for e in employees])

        rows = []
        for employee in employees:
            key = (employee.employee_id, today)
            records = inputs.records.get(key, [])
            try:
                ordered = order_records(records)
                day = classify_day(
                    today,
                    inputs.schedules.get(key),
                    inputs.leaves.get(key),
                    ordered,
                    self.grace_minutes,
                    self.clock.tz,
                )
            except DataIntegrityError as e:
                logger.warning("Live status for employee %s: %s", employee.employee_id, e.message)
                rows.append(
                    LiveStatus(
                        employee_id=employee.employee_id,
                        employee_name=employee.full_name,
                        state=None,
                        status=None,
                        hours_worked=None,
                        last_event_at=None,
                        error=e.message,
                    )
                )
                continue

            rows.append(
                LiveStatus(
                    employee_id=employee.employee_id,
                    employee_name=employee.full_name,
                    state=current_clock_state(ordered),
                    status=day.status,
                    hours_worked=day.hours_worked,
                    last_event_at=_last_event(ordered),
                    break_seconds_remaining=break_seconds_remaining(ordered, now),
                )
            )
        return rows

    async def monthly_timesheet(self, employee_id: UUID, year: int, month: int) -> list[TimesheetRow]:
        """Per-day DTR rows for one employee and calendar month.

        A day with malformed records is flagged in its row; the rest of the
        month is still reported.
        """
        await get_active_employee(self.session, employee_id)
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        inputs = await self._load(first, last, [employee_id])

        rows = []
        day = first
        while day <= last:
            rows.append(self._timesheet_row(employee_id, day, inputs))
            day += timedelta(days=1)
        return rows

    def _timesheet_row(self, employee_id: UUID, day: date, inputs: _DayInputs) -> TimesheetRow:
        key = (employee_id, day)
        try:
            ordered = order_records(inputs.records.get(key, []))
            result = classify_day(
                day,
                inputs.schedules.get(key),
                inputs.leaves.get(key),
                ordered,
                self.grace_minutes,
                self.clock.tz,
            )
        except DataIntegrityError as e:
            logger.warning("Timesheet %s %s flagged: %s", employee_id, day, e.message)
            return TimesheetRow(work_date=day, status=None, error=e.message)

        segments: list[tuple[datetime | None, datetime | None]] = [
            (self._local(r.time_in), self._local(r.time_out)) for r in ordered
        ]
        segments += [(None, None)] * (2 - len(segments))
        (am_in, am_out), (pm_in, pm_out) = segments
        return TimesheetRow(
            work_date=day,
            status=result.status,
            hours_worked=result.hours_worked,
            am_arrival=am_in,
            am_departure=am_out,
            pm_arrival=pm_in,
            pm_departure=pm_out,
        )

    async def attendance_summary(
        self,
        start: date,
        end: date,
        employee_id: UUID | None = None,
    ) -> dict[DayStatus, int]:
        """Count classifications over ``[start, end]``; flagged days are not counted."""
        if end < start:
            raise ValueError("end must not be before start")
        if employee_id is not None:
            await get_active_employee(self.session, employee_id)
            employee_ids = [employee_id]
        else:
            employee_ids = [e.employee_id for e in await self._active_employees()]
        inputs = await self._load(start, end, employee_ids)

        counts: Counter[DayStatus] = Counter({status: 0 for status in DayStatus})
        for emp_id in employee_ids:
            day = start
            while day <= end:
                row = self._timesheet_row(emp_id, day, inputs)
                if row.status is not None:
                    counts[row.status] += 1
                day += timedelta(days=1)
        return dict(counts)

    async def _active_employees(self) -> list[Employee]:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.status == "active")
            .order_by(Employee.last_name, Employee.first_name)
        )
        return list(result.scalars().all())

    async def _load(self, start: date, end: date, employee_ids: list[UUID]) -> _DayInputs:
        inputs = _DayInputs(schedules={}, records=defaultdict(list), leaves={})
        if not employee_ids:
            return inputs

        schedules = await self.session.execute(
            select(ScheduleEntry).where(
                ScheduleEntry.employee_id.in_(employee_ids),
                ScheduleEntry.work_date.between(start, end),
            )
        )
        for entry in schedules.scalars():
            inputs.schedules[(entry.employee_id, entry.work_date)] = entry.to_slot()

        records = await self.session.execute(
            select(ClockRecord)
            .where(
                ClockRecord.employee_id.in_(employee_ids),
                ClockRecord.work_date.between(start, end),
            )
            .execution_options(populate_existing=True)
        )
        for record in records.scalars():
            inputs.records[(record.employee_id, record.work_date)].append(record.to_entry())

        leaves = await self.session.execute(
            select(LeaveRecord).where(
                LeaveRecord.employee_id.in_(employee_ids),
                LeaveRecord.leave_date.between(start, end),
            )
        )
        for leave in leaves.scalars():
            inputs.leaves[(leave.employee_id, leave.leave_date)] = leave.to_leave_day()
        return inputs

    def _local(self, instant: datetime | None) -> datetime | None:
        return self.clock.to_business(instant) if instant is not None else None


def _last_event(ordered: list[ClockEntry]) -> datetime | None:
    if not ordered:
        return None
    last = ordered[-1]
    return last.time_out or last.time_in
