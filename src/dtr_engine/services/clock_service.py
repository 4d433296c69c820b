"""Clock scan processing: read today's records, decide, persist."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.calculators.clock_events import CloseSegment, OpenSegment, decide_scan
from dtr_engine.calculators.types import ClockAction
from dtr_engine.clock import BusinessClock
from dtr_engine.errors import ConcurrentScanRejectedError, EmployeeNotFoundError
from dtr_engine.models import ClockRecord, Employee, ScheduleEntry
from dtr_engine.services.locking_service import EmployeeLockRegistry, scan_locks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    employee_id: UUID
    employee_name: str
    action: ClockAction
    work_date: date
    segment: int
    occurred_at: datetime


async def get_active_employee(session: AsyncSession, employee_id: UUID) -> Employee:
    """Load an active employee or raise ``EmployeeNotFoundError``."""
    employee = await session.get(Employee, employee_id)
    if employee is None or not employee.is_active:
        raise EmployeeNotFoundError(employee_id)
    return employee


class ClockService:
    """Applies one scan at a time per employee.

    The scan runs under the employee's scan lock. The database enforces the
    same invariant independently: a second insert of the same segment violates
    the (employee, work_date, segment) unique constraint, and closing a
    segment only succeeds while its time-out is still empty. Either conflict
    surfaces as ``ConcurrentScanRejectedError``.
    """

    def __init__(
        self,
        session: AsyncSession,
        clock: BusinessClock,
        locks: EmployeeLockRegistry | None = None,
    ):
        self.session = session
        self.clock = clock
        self.locks = locks or scan_locks

    async def scan(self, employee_id: UUID) -> ScanResult:
        """Process a scan for ``employee_id`` at the business clock's now.

        Raises:
            EmployeeNotFoundError: unknown or inactive employee
            PreconditionError: the scan is not a valid transition
            ConcurrentScanRejectedError: another scan for the employee won
            DataIntegrityError: today's existing records are malformed
        """
        async with self.locks.hold(employee_id):
            employee = await get_active_employee(self.session, employee_id)
            now = self.clock.now()
            today = self.clock.business_date(now)

            schedule = await self.session.scalar(
                select(ScheduleEntry).where(
                    ScheduleEntry.employee_id == employee_id,
                    ScheduleEntry.work_date == today,
                )
            )
            records = await self.records_for_day(employee_id, today)

            decision = decide_scan(
                [r.to_entry() for r in records],
                schedule.to_slot() if schedule else None,
                now,
            )

            try:
                await self._apply(employee_id, today, decision.mutation, now)
                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                raise ConcurrentScanRejectedError(employee_id) from e

        logger.info(
            "Employee %s: %s at %s", employee_id, decision.action.value, now.isoformat()
        )
        return ScanResult(
            employee_id=employee_id,
            employee_name=employee.full_name,
            action=decision.action,
            work_date=today,
            segment=decision.mutation.segment,
            occurred_at=now,
        )

    async def records_for_day(self, employee_id: UUID, work_date: date) -> list[ClockRecord]:
        result = await self.session.execute(
            select(ClockRecord)
            .where(
                ClockRecord.employee_id == employee_id,
                ClockRecord.work_date == work_date,
            )
            .order_by(ClockRecord.created_at, ClockRecord.segment)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def _apply(
        self,
        employee_id: UUID,
        work_date: date,
        mutation: OpenSegment | CloseSegment,
        now: datetime,
    ) -> None:
        if isinstance(mutation, OpenSegment):
            self.session.add(
                ClockRecord(
                    employee_id=employee_id,
                    work_date=work_date,
                    segment=mutation.segment,
                    time_in=mutation.time_in,
                    created_at=now,
                )
            )
            await self.session.flush()
            return

        result = await self.session.execute(
            update(ClockRecord)
            .where(
                ClockRecord.clock_record_id == mutation.record_id,
                ClockRecord.time_out.is_(None),
            )
            .values(time_out=mutation.time_out)
        )
        if result.rowcount != 1:
            await self.session.rollback()
            raise ConcurrentScanRejectedError(employee_id)
