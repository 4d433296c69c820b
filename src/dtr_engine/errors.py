"""Engine error hierarchy.

Every failure the engine can produce is one of three kinds:

- PreconditionError: an expected, user-displayable rejection (e.g. clocking
  in without a schedule). Never logged as a system failure.
- DataIntegrityError: upstream records are malformed. Aborts the single
  affected computation, not the batch.
- ConcurrencyError: the caller lost a race for the same employee. Retryable
  once after re-reading state.

Each error carries a stable ``code`` that API clients can switch on.
"""

from __future__ import annotations

import math
from datetime import date, timedelta
from uuid import UUID


class EngineError(Exception):
    """Base class for all engine errors."""

    code = "ENGINE_ERROR"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# ============================================================================
# Precondition errors
# ============================================================================


class PreconditionError(EngineError):
    """An expected, recoverable rejection of a request."""

    code = "PRECONDITION_FAILED"


class EmployeeNotFoundError(PreconditionError):
    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: UUID | str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found or inactive")


class NotScheduledError(PreconditionError):
    code = "NOT_SCHEDULED"

    def __init__(self, work_date: date):
        self.work_date = work_date
        super().__init__(f"No work schedule for {work_date.isoformat()}")


class TooEarlyForBreakError(PreconditionError):
    code = "TOO_EARLY_FOR_BREAK"

    def __init__(self, remaining: timedelta):
        self.remaining = remaining
        minutes = math.ceil(remaining.total_seconds() / 60)
        super().__init__(f"Too early for break, try again in {minutes} minute(s)")


class DayAlreadyCompleteError(PreconditionError):
    code = "DAY_ALREADY_COMPLETE"

    def __init__(self) -> None:
        super().__init__("You have already clocked out for the day")


class TooLateToReopenError(PreconditionError):
    code = "TOO_LATE_TO_REOPEN"

    def __init__(self) -> None:
        super().__init__("Your work day closed more than 3 hours ago")


class PastDateError(PreconditionError):
    code = "PAST_DATE"

    def __init__(self, requested: date):
        self.requested = requested
        super().__init__(f"Cannot request leave for a past date ({requested.isoformat()})")


class DayUnavailableError(PreconditionError):
    code = "DAY_UNAVAILABLE"

    def __init__(self, requested: date, reason: str):
        self.requested = requested
        self.reason = reason
        super().__init__(f"{requested.isoformat()} is not available: {reason}")


class MonthlyCapExceededError(PreconditionError):
    code = "MONTHLY_CAP_EXCEEDED"

    def __init__(self, year: int, month: int, cap: int):
        self.year = year
        self.month = month
        self.cap = cap
        super().__init__(f"Only {cap} day-offs are allowed in {year}-{month:02d}")


class InsufficientBalanceError(PreconditionError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Requested {requested} day(s) but only {available} remaining"
        )


class NotEligibleError(PreconditionError):
    code = "NOT_ELIGIBLE"

    def __init__(self, eligible_on: date):
        self.eligible_on = eligible_on
        super().__init__(
            f"Service incentive leave is available from {eligible_on.isoformat()}"
        )


class AlreadyRequestedTodayError(PreconditionError):
    code = "ALREADY_REQUESTED_TODAY"

    def __init__(self, requested: date):
        self.requested = requested
        super().__init__(f"A leave is already recorded for {requested.isoformat()}")


class NoEligibleEmployeesError(PreconditionError):
    code = "NO_ELIGIBLE_EMPLOYEES"

    def __init__(self, period_start: date, period_end: date):
        self.period_start = period_start
        self.period_end = period_end
        super().__init__(
            f"No work or leave recorded for any employee between "
            f"{period_start.isoformat()} and {period_end.isoformat()}"
        )


class InvalidManualDeductionError(PreconditionError):
    code = "INVALID_MANUAL_DEDUCTION"


class PayrollAlreadyCommittedError(PreconditionError):
    code = "PAYROLL_ALREADY_COMMITTED"

    def __init__(self, employee_id: UUID, period_start: date, period_end: date):
        self.employee_id = employee_id
        super().__init__(
            f"Payroll for employee {employee_id} covering "
            f"{period_start.isoformat()}..{period_end.isoformat()} already exists"
        )


class InvalidSalaryRuleError(PreconditionError):
    code = "INVALID_SALARY_RULE"


class PayrollLineNotFoundError(PreconditionError):
    code = "PAYROLL_LINE_NOT_FOUND"

    def __init__(self, line_id: UUID):
        self.line_id = line_id
        super().__init__(f"Payroll line {line_id} not found")


class SalaryRuleNotFoundError(PreconditionError):
    code = "SALARY_RULE_NOT_FOUND"

    def __init__(self, rule_id: UUID):
        self.rule_id = rule_id
        super().__init__(f"Salary rule {rule_id} not found")


class EmployeeNotInPayrollError(PreconditionError):
    code = "EMPLOYEE_NOT_IN_PAYROLL"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} has no line in this payroll run")


# ============================================================================
# Data integrity errors
# ============================================================================


class DataIntegrityError(EngineError):
    """Upstream data is inconsistent; skip the affected computation."""

    code = "DATA_INTEGRITY"


class RateNotFoundError(DataIntegrityError):
    """Raised when no daily rate can be determined for an employee."""

    code = "RATE_NOT_FOUND"

    def __init__(self, employee_id: UUID, branch: str | None, position: str | None):
        self.employee_id = employee_id
        self.branch = branch
        self.position = position
        super().__init__(
            f"No daily rate for employee {employee_id} "
            f"(branch={branch!r}, position={position!r})"
        )


# ============================================================================
# Concurrency errors
# ============================================================================


class ConcurrencyError(EngineError):
    """The request lost a race against another request for the same employee."""

    code = "CONCURRENT_REQUEST"
    retryable = True


class ConcurrentScanRejectedError(ConcurrencyError):
    code = "CONCURRENT_SCAN_REJECTED"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(
            f"Another scan for employee {employee_id} is being processed"
        )


class ConcurrentLeaveRequestRejectedError(ConcurrencyError):
    code = "CONCURRENT_LEAVE_REQUEST_REJECTED"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(
            f"Another leave request for employee {employee_id} is being processed"
        )


class PayrollInputsChangedError(ConcurrencyError):
    """Attendance data changed between preview and commit."""

    code = "PAYROLL_INPUTS_CHANGED"

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(
            f"Payroll inputs for employee {employee_id} changed since the preview; "
            "review the new figures before committing"
        )
