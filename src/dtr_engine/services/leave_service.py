"""Leave requests and SIL entitlement.

Each request records its LeaveRecords and then debits the employee's balance
as one logical unit: if the debit does not go through, the inserted records
are deleted again before the error is raised.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.calculators.leave_rules import (
    evaluate_sil_grant,
    service_year_window,
    validate_day_off_request,
    validate_emergency_leave,
    validate_sil_request,
)
from dtr_engine.calculators.types import LeaveKind
from dtr_engine.clock import BusinessClock
from dtr_engine.constants import SIL_BLOCK_DAYS
from dtr_engine.errors import ConcurrentLeaveRequestRejectedError, DataIntegrityError
from dtr_engine.models import Employee, LeaveRecord, ScheduleEntry
from dtr_engine.services.clock_service import get_active_employee
from dtr_engine.services.locking_service import EmployeeLockRegistry, leave_locks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveResult:
    employee_id: UUID
    kind: LeaveKind
    dates: list[date]
    day_off_balance: int
    sil_balance: int


class SilEvaluationGate:
    """Remembers which (employee, service year) pairs were already evaluated.

    Re-evaluating on every profile load would write the balance again each
    time; the gate lets the grant check run once per service year instead.
    """

    def __init__(self) -> None:
        self._seen: set[tuple[UUID, date]] = set()

    def claim(self, employee_id: UUID, window_start: date) -> bool:
        key = (employee_id, window_start)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def release(self, employee_id: UUID, window_start: date) -> None:
        """Forget a claim whose evaluation did not complete."""
        self._seen.discard((employee_id, window_start))

    def reset(self) -> None:
        self._seen.clear()


sil_gate = SilEvaluationGate()


class LeaveService:
    def __init__(
        self,
        session: AsyncSession,
        clock: BusinessClock,
        locks: EmployeeLockRegistry | None = None,
        gate: SilEvaluationGate | None = None,
    ):
        self.session = session
        self.clock = clock
        self.locks = locks or leave_locks
        self.gate = gate or sil_gate

    async def evaluate_sil_entitlement(self, employee_id: UUID) -> int | None:
        """Grant the yearly SIL entitlement if due.

        Returns the new balance when it was written, None otherwise
        (not eligible, already evaluated this service year, SIL already
        taken, or balance already full).
        """
        async with self.locks.hold(employee_id):
            employee = await get_active_employee(self.session, employee_id)
            today = self.clock.today()
            if employee.hire_date is None or today < employee.hire_date:
                return None

            window_start, window_end = service_year_window(employee.hire_date, today)
            if not self.gate.claim(employee_id, window_start):
                return None

            try:
                new_balance = await self._grant_sil(employee, window_start, window_end, today)
            except Exception:
                # A failed evaluation must not use up the service year's check
                await self.session.rollback()
                self.gate.release(employee_id, window_start)
                raise
            if new_balance is None:
                return None

        logger.info("Granted SIL balance %s to employee %s", new_balance, employee_id)
        return new_balance

    async def _grant_sil(
        self, employee: Employee, window_start: date, window_end: date, today: date
    ) -> int | None:
        taken = await self.session.scalars(
            select(LeaveRecord.leave_date).where(
                LeaveRecord.employee_id == employee.employee_id,
                LeaveRecord.kind == LeaveKind.SIL.value,
                LeaveRecord.leave_date >= window_start,
                LeaveRecord.leave_date < window_end,
            )
        )
        new_balance = evaluate_sil_grant(
            employee.hire_date, employee.sil_balance, taken.all(), today
        )
        if new_balance is not None:
            employee.sil_balance = new_balance
            await self.session.commit()
        return new_balance

    async def request_day_off(self, employee_id: UUID, dates: Iterable[date]) -> LeaveResult:
        """Record day-offs and debit the day-off balance by their count.

        Raises:
            PastDateError, DayUnavailableError, MonthlyCapExceededError,
            InsufficientBalanceError: the request is not allowed
            ConcurrentLeaveRequestRejectedError: another request is in flight
        """
        requested = sorted(set(dates))
        if not requested:
            raise ValueError("At least one date must be requested")

        async with self.locks.hold(employee_id):
            employee = await get_active_employee(self.session, employee_id)
            first = requested[0].replace(day=1)
            last_month = requested[-1]
            last = last_month.replace(
                day=calendar.monthrange(last_month.year, last_month.month)[1]
            )
            existing = await self._existing_leaves(employee_id, first, last)
            scheduled = await self._scheduled_dates(employee_id, requested)

            to_record = validate_day_off_request(
                requested,
                self.clock.today(),
                scheduled,
                existing,
                employee.day_off_balance,
            )
            balance = employee.day_off_balance - len(to_record)
            await self._record_and_debit(
                employee_id, to_record, LeaveKind.DAY_OFF, day_off_balance=balance
            )

        return LeaveResult(employee_id, LeaveKind.DAY_OFF, to_record, balance, employee.sil_balance)

    async def request_emergency_leave(self, employee_id: UUID) -> LeaveResult:
        """Record emergency leave for today.

        The balance may go negative; the shortfall is borrowed from future
        leave credits.
        """
        async with self.locks.hold(employee_id):
            employee = await get_active_employee(self.session, employee_id)
            today = self.clock.today()
            existing = await self._existing_leaves(employee_id, today, today)
            day = validate_emergency_leave(today, existing)

            balance = employee.day_off_balance - 1
            await self._record_and_debit(
                employee_id, [day], LeaveKind.EMERGENCY, day_off_balance=balance
            )

        if balance < 0:
            logger.info("Employee %s borrowed leave credit (balance %s)", employee_id, balance)
        return LeaveResult(employee_id, LeaveKind.EMERGENCY, [day], balance, employee.sil_balance)

    async def request_sil(self, employee_id: UUID, start_date: date) -> LeaveResult:
        """Record the five-day SIL block starting at ``start_date``.

        Raises:
            PastDateError, NotEligibleError, InsufficientBalanceError,
            DayUnavailableError: the request is not allowed
            ConcurrentLeaveRequestRejectedError: another request is in flight
        """
        async with self.locks.hold(employee_id):
            employee = await get_active_employee(self.session, employee_id)
            block_end = start_date + timedelta(days=SIL_BLOCK_DAYS - 1)
            existing = await self._existing_leaves(employee_id, start_date, block_end)
            block = validate_sil_request(
                start_date,
                self.clock.today(),
                employee.hire_date,
                employee.sil_balance,
                existing,
            )
            await self._record_and_debit(employee_id, block, LeaveKind.SIL, sil_balance=0)

        return LeaveResult(employee_id, LeaveKind.SIL, block, employee.day_off_balance, 0)

    async def _record_and_debit(
        self,
        employee_id: UUID,
        dates: list[date],
        kind: LeaveKind,
        **balances: Any,
    ) -> None:
        records = [
            LeaveRecord(employee_id=employee_id, leave_date=d, kind=kind.value) for d in dates
        ]
        self.session.add_all(records)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConcurrentLeaveRequestRejectedError(employee_id) from e

        if not await self._debit_balance(employee_id, **balances):
            await self._delete_records([r.leave_record_id for r in records])
            await self.session.commit()
            raise DataIntegrityError(
                f"Balance update for employee {employee_id} failed; "
                f"{len(records)} leave record(s) were removed again"
            )

        await self.session.commit()
        logger.info(
            "Recorded %s leave for employee %s on %s",
            kind.value,
            employee_id,
            ", ".join(d.isoformat() for d in dates),
        )

    async def _debit_balance(self, employee_id: UUID, **balances: Any) -> bool:
        result = await self.session.execute(
            update(Employee).where(Employee.employee_id == employee_id).values(**balances)
        )
        return result.rowcount == 1

    async def _delete_records(self, record_ids: list[UUID]) -> None:
        await self.session.execute(
            delete(LeaveRecord).where(LeaveRecord.leave_record_id.in_(record_ids))
        )
        logger.error("Removed %d leave record(s) after a failed balance update", len(record_ids))

    async def _existing_leaves(
        self, employee_id: UUID, start: date, end: date
    ) -> dict[date, LeaveKind]:
        result = await self.session.execute(
            select(LeaveRecord).where(
                LeaveRecord.employee_id == employee_id,
                LeaveRecord.leave_date.between(start, end),
            )
        )
        return {r.leave_date: LeaveKind(r.kind) for r in result.scalars()}

    async def _scheduled_dates(self, employee_id: UUID, dates: list[date]) -> set[date]:
        result = await self.session.scalars(
            select(ScheduleEntry.work_date).where(
                ScheduleEntry.employee_id == employee_id,
                ScheduleEntry.work_date.in_(dates),
            )
        )
        return set(result.all())
