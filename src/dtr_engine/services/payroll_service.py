"""Payroll service - preview, adjust and commit payroll for a pay period."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.calculators.pay_period import PayPeriod, pay_period_for
from dtr_engine.calculators.payroll import (
    PayrollCalculator,
    PayrollComputation,
    PayrollPreview,
    PeriodSnapshot,
    round_money,
)
from dtr_engine.calculators.types import PayrollStatus
from dtr_engine.clock import BusinessClock
from dtr_engine.config import Settings
from dtr_engine.errors import (
    EmployeeNotInPayrollError,
    NoEligibleEmployeesError,
    PayrollAlreadyCommittedError,
    PayrollInputsChangedError,
    PayrollLineNotFoundError,
)
from dtr_engine.models import (
    ClockRecord,
    Employee,
    LeaveRecord,
    PayrollLine,
    SalaryRule,
    ScheduleEntry,
)

logger = logging.getLogger(__name__)


class PayrollService:
    """Service for payroll runs.

    Operations:
    - preview: compute every employee's line for a period (no writes)
    - apply_adjustments: manual deductions and selection on a preview
    - commit: persist the selected lines, once per employee and period
    - update_status: Paid / Delayed / Unpaid after commit
    """

    def __init__(self, session: AsyncSession, settings: Settings, clock: BusinessClock):
        self.session = session
        self.settings = settings
        self.clock = clock
        self.calculator = PayrollCalculator(
            grace_minutes=settings.grace_period_minutes,
            rate_per_minute=settings.deduction_rate_per_minute,
            birthday_bonuses=settings.birthday_bonuses,
            tz=clock.tz,
            engine_version=settings.engine_version,
        )

    async def load_snapshot(self, period: PayPeriod, employee_ids: list[UUID]) -> PeriodSnapshot:
        """Fetch schedules, clock records, leaves and active rules for the period."""
        snapshot = PeriodSnapshot()
        if not employee_ids:
            return snapshot

        schedules = await self.session.execute(
            select(ScheduleEntry).where(
                ScheduleEntry.employee_id.in_(employee_ids),
                ScheduleEntry.work_date.between(period.start, period.end),
            )
        )
        for entry in schedules.scalars():
            snapshot.schedules[(entry.employee_id, entry.work_date)] = entry.to_slot()

        records = await self.session.execute(
            select(ClockRecord)
            .where(
                ClockRecord.employee_id.in_(employee_ids),
                ClockRecord.work_date.between(period.start, period.end),
            )
            .execution_options(populate_existing=True)
        )
        grouped = defaultdict(list)
        for record in records.scalars():
            grouped[(record.employee_id, record.work_date)].append(record.to_entry())
        snapshot.records = dict(grouped)

        leaves = await self.session.execute(
            select(LeaveRecord).where(
                LeaveRecord.employee_id.in_(employee_ids),
                LeaveRecord.leave_date.between(period.start, period.end),
            )
        )
        for leave in leaves.scalars():
            snapshot.leaves[(leave.employee_id, leave.leave_date)] = leave.to_leave_day()

        rules = await self.session.execute(
            select(SalaryRule)
            .where(
                SalaryRule.is_active.is_(True),
                SalaryRule.start_date <= period.end,
                SalaryRule.end_date >= period.start,
            )
            .order_by(SalaryRule.name)
        )
        snapshot.rules = [rule.to_rule() for rule in rules.scalars()]
        return snapshot

    async def preview(self, reference_date: date | None = None) -> PayrollPreview:
        """Compute the payroll run for the period containing ``reference_date``.

        Raises:
            NoEligibleEmployeesError: nobody worked or took leave in the period
        """
        period = pay_period_for(reference_date or self.clock.today())
        result = await self.session.execute(
            select(Employee).where(Employee.status == "active")
        )
        employees = list(result.scalars().all())
        snapshot = await self.load_snapshot(period, [e.employee_id for e in employees])

        preview = self.calculator.calculate_all(
            [e.to_profile() for e in employees], period, snapshot
        )
        if not preview.lines:
            raise NoEligibleEmployeesError(period.start, period.end)

        logger.info(
            "Payroll preview %s..%s: %d line(s), %d skipped",
            period.start,
            period.end,
            len(preview.lines),
            len(preview.errors),
        )
        return preview

    def apply_adjustments(
        self,
        preview: PayrollPreview,
        manual_deductions: Mapping[UUID, Decimal] | None = None,
        excluded: set[UUID] | None = None,
        expected_calculation_ids: Mapping[UUID, UUID] | None = None,
    ) -> PayrollPreview:
        """Apply administrator overrides to a freshly computed preview.

        Raises:
            EmployeeNotInPayrollError: an override names an employee without a line
            InvalidManualDeductionError: a negative manual deduction
            PayrollInputsChangedError: a line no longer matches the previewed one
        """
        try:
            for employee_id, expected in (expected_calculation_ids or {}).items():
                if preview.line_for(employee_id).calculation_id != expected:
                    raise PayrollInputsChangedError(employee_id)

            for employee_id, amount in (manual_deductions or {}).items():
                preview.set_manual_deduction(employee_id, amount)

            preview.select_all()
            for employee_id in excluded or set():
                preview.set_selected(employee_id, False)
        except KeyError as e:
            raise EmployeeNotInPayrollError(e.args[0]) from None
        return preview

    async def commit(
        self,
        preview: PayrollPreview,
        committed_by: str | None = None,
    ) -> list[PayrollLine]:
        """Persist one PayrollLine per selected computation.

        Raises:
            NoEligibleEmployeesError: no line is selected
            PayrollAlreadyCommittedError: an employee already has a line for the period
        """
        period = preview.period
        selected = preview.selected_lines
        if not selected:
            raise NoEligibleEmployeesError(period.start, period.end)

        existing = await self.session.scalars(
            select(PayrollLine.employee_id).where(
                PayrollLine.employee_id.in_([c.employee_id for c in selected]),
                PayrollLine.period_start == period.start,
                PayrollLine.period_end == period.end,
            )
        )
        already = existing.first()
        if already is not None:
            raise PayrollAlreadyCommittedError(already, period.start, period.end)

        lines = [self._to_line(c, committed_by) for c in selected]
        self.session.add_all(lines)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise PayrollAlreadyCommittedError(
                selected[0].employee_id, period.start, period.end
            ) from e
        await self.session.commit()

        logger.info(
            "Committed payroll %s..%s: %d line(s) by %s",
            period.start,
            period.end,
            len(lines),
            committed_by or "unknown",
        )
        return lines

    @staticmethod
    def _to_line(c: PayrollComputation, committed_by: str | None) -> PayrollLine:
        lateness_deduction = round_money(c.lateness_deduction)
        undertime_deduction = round_money(c.undertime_deduction)
        manual_deduction = round_money(c.manual_deduction)
        total_gross = round_money(c.total_gross_pay)
        # Net is re-derived from the rounded parts so stored columns add up
        return PayrollLine(
            employee_id=c.employee_id,
            period_start=c.period_start,
            period_end=c.period_end,
            days_worked=c.days_worked,
            leave_days=c.leave_days,
            total_hours=round_money(c.total_hours),
            daily_rate=round_money(c.daily_rate),
            gross_pay=round_money(c.base_gross_pay),
            salary_raise=round_money(c.salary_raise),
            birthday_bonus=round_money(c.birthday_bonus),
            total_gross_pay=total_gross,
            lateness_minutes=c.total_minutes_late,
            undertime_minutes=c.total_minutes_undertime,
            lateness_deduction=lateness_deduction,
            undertime_deduction=undertime_deduction,
            manual_deduction=manual_deduction,
            net_pay=max(
                total_gross - lateness_deduction - undertime_deduction - manual_deduction,
                Decimal("0.00"),
            ),
            raise_breakdown={
                name: str(round_money(amount)) for name, amount in c.raise_breakdown.items()
            },
            status=PayrollStatus.PAID.value,
            calculation_id=c.calculation_id,
            committed_by=committed_by,
        )

    async def update_status(self, line_id: UUID, status: PayrollStatus) -> PayrollLine:
        """Change a committed line's status (the only mutable field)."""
        line = await self.session.get(PayrollLine, line_id)
        if line is None:
            raise PayrollLineNotFoundError(line_id)
        line.status = PayrollStatus(status).value
        await self.session.commit()
        logger.info("Payroll line %s marked %s", line_id, line.status)
        return line

    async def lines_for_employee(self, employee_id: UUID) -> list[PayrollLine]:
        result = await self.session.execute(
            select(PayrollLine)
            .where(PayrollLine.employee_id == employee_id)
            .order_by(PayrollLine.period_start.desc())
        )
        return list(result.scalars().all())
