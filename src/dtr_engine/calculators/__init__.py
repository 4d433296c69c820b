"""Pure attendance and payroll calculators."""

from dtr_engine.calculators.attendance import DayAttendance, classify_day, worked_hours
from dtr_engine.calculators.clock_events import (
    ClockEventStateMachine,
    ScanDecision,
    current_clock_state,
    decide_scan,
)
from dtr_engine.calculators.pay_period import PayPeriod, pay_period_for
from dtr_engine.calculators.payroll import (
    PayrollCalculator,
    PayrollComputation,
    PayrollPreview,
    PeriodSnapshot,
)
from dtr_engine.calculators.rate_resolver import resolve_daily_rate

__all__ = [
    "ClockEventStateMachine",
    "DayAttendance",
    "PayPeriod",
    "PayrollCalculator",
    "PayrollComputation",
    "PayrollPreview",
    "PeriodSnapshot",
    "ScanDecision",
    "classify_day",
    "current_clock_state",
    "decide_scan",
    "pay_period_for",
    "resolve_daily_rate",
    "worked_hours",
]
