"""Payroll aggregation over a pay period.

Per employee, each calendar day of the period is classified exactly as the
timesheet classifies it and folded into a ``PayrollComputation``:

1) Leave day          -> counts as a paid leave day
2) No schedule        -> skipped
3) Scheduled, no DTR  -> absence (simply not paid)
4) Otherwise          -> worked day: hours, lateness, undertime, raises

Then gross, deductions, birth-month bonus and net are derived. The
calculation is pure and deterministic: the same snapshot always produces the
same figures and the same ``calculation_id``.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable
from uuid import UUID
from zoneinfo import ZoneInfo

from dtr_engine.calculators.attendance import (
    DayAttendance,
    classify_day,
    lateness,
    schedule_bounds,
)
from dtr_engine.calculators.pay_period import PayPeriod
from dtr_engine.calculators.rate_resolver import resolve_daily_rate
from dtr_engine.calculators.types import (
    ClockEntry,
    DayStatus,
    EmployeeProfile,
    LeaveDay,
    RaiseRule,
    ScheduleSlot,
)
from dtr_engine.constants import BIRTHDAY_BONUS_LABEL, BREAK_DURATION
from dtr_engine.errors import DataIntegrityError, InvalidManualDeductionError

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
SIXTY = Decimal("60")

WORKED_STATUSES = frozenset({DayStatus.PRESENT, DayStatus.LATE})


def round_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_minutes(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class PeriodSnapshot:
    """Everything a payroll run reads, fetched once for the whole period."""

    schedules: dict[tuple[UUID, date], ScheduleSlot] = field(default_factory=dict)
    records: dict[tuple[UUID, date], list[ClockEntry]] = field(default_factory=dict)
    leaves: dict[tuple[UUID, date], LeaveDay] = field(default_factory=dict)
    rules: list[RaiseRule] = field(default_factory=list)


@dataclass
class PayrollComputation:
    """Computed payroll line for one employee, before commit."""

    employee_id: UUID
    employee_name: str
    period_start: date
    period_end: date
    daily_rate: Decimal
    days_worked: int
    leave_days: int
    total_hours: Decimal
    total_minutes_late: int
    total_minutes_undertime: int
    base_gross_pay: Decimal
    salary_raise: Decimal
    birthday_bonus: Decimal
    total_gross_pay: Decimal
    lateness_deduction: Decimal
    undertime_deduction: Decimal
    raise_breakdown: dict[str, Decimal]
    calculation_id: UUID
    manual_deduction: Decimal = ZERO
    net_pay: Decimal = ZERO
    selected: bool = True

    def __post_init__(self) -> None:
        self.net_pay = self.derive_net_pay()

    def derive_net_pay(self) -> Decimal:
        net = (
            self.total_gross_pay
            - self.lateness_deduction
            - self.undertime_deduction
            - self.manual_deduction
        )
        return max(ZERO, net)

    def apply_manual_deduction(self, amount: Decimal) -> None:
        """Override the manual deduction and re-derive net pay."""
        amount = Decimal(str(amount))
        if amount < 0:
            raise InvalidManualDeductionError("Manual deduction cannot be negative")
        self.manual_deduction = amount
        self.net_pay = self.derive_net_pay()

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict of the computed figures (deterministic ordering)."""
        return {
            "employee_id": str(self.employee_id),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "daily_rate": str(self.daily_rate),
            "days_worked": self.days_worked,
            "leave_days": self.leave_days,
            "total_hours": str(self.total_hours),
            "total_minutes_late": self.total_minutes_late,
            "total_minutes_undertime": self.total_minutes_undertime,
            "base_gross_pay": str(self.base_gross_pay),
            "salary_raise": str(self.salary_raise),
            "birthday_bonus": str(self.birthday_bonus),
            "total_gross_pay": str(self.total_gross_pay),
            "lateness_deduction": str(self.lateness_deduction),
            "undertime_deduction": str(self.undertime_deduction),
            "manual_deduction": str(self.manual_deduction),
            "net_pay": str(self.net_pay),
            "raise_breakdown": {k: str(v) for k, v in sorted(self.raise_breakdown.items())},
            "calculation_id": str(self.calculation_id),
        }


@dataclass
class _DayTotals:
    days_worked: int = 0
    leave_days: int = 0
    hours: Decimal = ZERO
    minutes_late: int = 0
    minutes_undertime: int = 0
    raise_percentages: dict[str, Decimal] = field(
        default_factory=lambda: defaultdict(lambda: ZERO)
    )


class PayrollCalculator:
    """Computes payroll lines from a preloaded period snapshot."""

    def __init__(
        self,
        grace_minutes: int,
        rate_per_minute: Decimal,
        birthday_bonuses: dict[str, Decimal] | None = None,
        tz: ZoneInfo | None = None,
        engine_version: str = "1.0.0",
    ):
        self.grace_minutes = grace_minutes
        self.rate_per_minute = rate_per_minute
        self.birthday_bonuses = {
            k.strip().lower(): v for k, v in (birthday_bonuses or {}).items()
        }
        self.tz = tz or ZoneInfo("Asia/Manila")
        self.engine_version = engine_version

    def calculate_employee(
        self,
        profile: EmployeeProfile,
        period: PayPeriod,
        snapshot: PeriodSnapshot,
    ) -> PayrollComputation | None:
        """Compute one employee's line; None when they neither worked nor took leave.

        Raises:
            DataIntegrityError: malformed clock records or no resolvable rate
        """
        totals = _DayTotals()

        for day in period.days():
            key = (profile.employee_id, day)
            schedule = snapshot.schedules.get(key)
            records = snapshot.records.get(key, [])
            attendance = classify_day(
                day, schedule, snapshot.leaves.get(key), records, self.grace_minutes, self.tz
            )
            if attendance.status is DayStatus.LEAVE:
                totals.leave_days += 1
            elif attendance.status in WORKED_STATUSES:
                self._accumulate_worked_day(
                    totals, attendance, schedule, records, snapshot.rules
                )

        if totals.days_worked == 0 and totals.leave_days == 0:
            return None

        daily_rate = resolve_daily_rate(profile)
        base_gross = Decimal(totals.days_worked + totals.leave_days) * daily_rate
        breakdown = {
            name: daily_rate * (percentage / HUNDRED)
            for name, percentage in sorted(totals.raise_percentages.items())
        }
        salary_raise = sum(breakdown.values(), ZERO)

        bonus = self.birthday_bonus_for(profile, period)
        if bonus > 0:
            breakdown[BIRTHDAY_BONUS_LABEL] = bonus

        computation = PayrollComputation(
            employee_id=profile.employee_id,
            employee_name=profile.full_name,
            period_start=period.start,
            period_end=period.end,
            daily_rate=daily_rate,
            days_worked=totals.days_worked,
            leave_days=totals.leave_days,
            total_hours=totals.hours,
            total_minutes_late=totals.minutes_late,
            total_minutes_undertime=totals.minutes_undertime,
            base_gross_pay=base_gross,
            salary_raise=salary_raise,
            birthday_bonus=bonus,
            total_gross_pay=base_gross + salary_raise + bonus,
            lateness_deduction=Decimal(totals.minutes_late) * self.rate_per_minute,
            undertime_deduction=Decimal(totals.minutes_undertime) * self.rate_per_minute,
            raise_breakdown=breakdown,
            calculation_id=UUID(int=0),
        )
        computation.calculation_id = self._generate_calculation_id(computation)
        return computation

    def _accumulate_worked_day(
        self,
        totals: _DayTotals,
        attendance: DayAttendance,
        schedule: ScheduleSlot,
        records: list[ClockEntry],
        rules: Iterable[RaiseRule],
    ) -> None:
        # Same rounded hours the timesheet shows for the day
        hours = attendance.hours_worked
        totals.days_worked += 1
        totals.hours += hours

        if attendance.status is DayStatus.LATE:
            late_by = lateness(records, schedule, self.tz)
            totals.minutes_late += round_minutes(
                Decimal(int(late_by.total_seconds())) / SIXTY
            )

        start, end = schedule_bounds(schedule, self.tz)
        required = Decimal(int((end - start - BREAK_DURATION).total_seconds())) / Decimal(3600)
        if hours < required:
            totals.minutes_undertime += round_minutes((required - hours) * SIXTY)

        for rule in rules:
            if rule.applies_on(attendance.work_date):
                totals.raise_percentages[rule.name] += rule.raise_percentage

    def birthday_bonus_for(self, profile: EmployeeProfile, period: PayPeriod) -> Decimal:
        """Position bonus when the birth month touches the period, else 0."""
        if profile.birth_date is None or profile.birth_date.month not in period.months:
            return ZERO
        position = (profile.position or "").strip().lower()
        return self.birthday_bonuses.get(position, ZERO)

    def calculate_all(
        self,
        profiles: Iterable[EmployeeProfile],
        period: PayPeriod,
        snapshot: PeriodSnapshot,
    ) -> PayrollPreview:
        """Compute every employee, isolating per-employee data problems."""
        lines: list[PayrollComputation] = []
        errors: dict[UUID, str] = {}

        for profile in sorted(profiles, key=lambda p: (p.full_name, str(p.employee_id))):
            try:
                line = self.calculate_employee(profile, period, snapshot)
            except DataIntegrityError as e:
                logger.warning(
                    "Skipping employee %s in payroll %s..%s: %s",
                    profile.employee_id,
                    period.start,
                    period.end,
                    e.message,
                )
                errors[profile.employee_id] = e.message
                continue
            if line is not None:
                lines.append(line)

        return PayrollPreview(period=period, lines=lines, errors=errors)

    def _generate_calculation_id(self, computation: PayrollComputation) -> UUID:
        """Generate deterministic calculation ID."""
        data = computation.to_canonical_dict()
        data.pop("calculation_id")
        data.pop("manual_deduction")
        data.pop("net_pay")
        data["engine_version"] = self.engine_version
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])


@dataclass
class PayrollPreview:
    """An uncommitted payroll run the administrator can adjust."""

    period: PayPeriod
    lines: list[PayrollComputation]
    errors: dict[UUID, str] = field(default_factory=dict)

    def line_for(self, employee_id: UUID) -> PayrollComputation:
        for line in self.lines:
            if line.employee_id == employee_id:
                return line
        raise KeyError(employee_id)

    def set_manual_deduction(self, employee_id: UUID, amount: Decimal) -> PayrollComputation:
        line = self.line_for(employee_id)
        line.apply_manual_deduction(amount)
        return line

    def set_selected(self, employee_id: UUID, selected: bool) -> None:
        self.line_for(employee_id).selected = selected

    def select_all(self, selected: bool = True) -> None:
        for line in self.lines:
            line.selected = selected

    @property
    def selected_lines(self) -> list[PayrollComputation]:
        return [line for line in self.lines if line.selected]

    @property
    def total_net_selected(self) -> Decimal:
        return sum((line.net_pay for line in self.selected_lines), ZERO)
