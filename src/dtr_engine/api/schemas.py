"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dtr_engine.calculators.types import ClockAction, ClockState, DayStatus, LeaveKind, PayrollStatus


class ErrorResponse(BaseModel):
    """Error response schema."""

    detail: str
    code: str
    retryable: bool = False


# ============================================================================
# Clock schemas
# ============================================================================


class ScanRequest(BaseModel):
    """A decoded scan: the token resolves to an employee id."""

    employee_id: UUID


class ScanResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
    action: ClockAction
    work_date: date
    segment: int
    occurred_at: datetime


# ============================================================================
# Attendance schemas
# ============================================================================


class LiveStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
    state: ClockState | None
    status: DayStatus | None
    hours_worked: Decimal | None
    last_event_at: datetime | None
    break_seconds_remaining: int | None = None
    error: str | None = None


class LiveStatusListResponse(BaseModel):
    work_date: date
    items: list[LiveStatusResponse]


class TimesheetRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    work_date: date
    status: DayStatus | None
    hours_worked: Decimal | None = None
    am_arrival: datetime | None = None
    am_departure: datetime | None = None
    pm_arrival: datetime | None = None
    pm_departure: datetime | None = None
    error: str | None = None


class TimesheetResponse(BaseModel):
    employee_id: UUID
    year: int
    month: int
    rows: list[TimesheetRowResponse]


class AttendanceSummaryResponse(BaseModel):
    start: date
    end: date
    employee_id: UUID | None = None
    counts: dict[DayStatus, int]


# ============================================================================
# Leave schemas
# ============================================================================


class DayOffRequest(BaseModel):
    dates: list[date] = Field(min_length=1)


class SilRequest(BaseModel):
    start_date: date


class LeaveResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    kind: LeaveKind
    dates: list[date]
    day_off_balance: int
    sil_balance: int


class SilEvaluationResponse(BaseModel):
    employee_id: UUID
    granted: bool
    sil_balance: int | None = None


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollPreviewRequest(BaseModel):
    """Any date inside the wanted pay period; defaults to today."""

    reference_date: date | None = None


class PayrollLinePreview(BaseModel):
    """Computed (uncommitted) payroll line."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_name: str
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
    manual_deduction: Decimal
    net_pay: Decimal
    raise_breakdown: dict[str, Decimal]
    calculation_id: UUID
    selected: bool


class PayrollPreviewResponse(BaseModel):
    period_start: date
    period_end: date
    lines: list[PayrollLinePreview]
    errors: dict[UUID, str] = Field(default_factory=dict)
    total_net_selected: Decimal


class PayrollCommitRequest(BaseModel):
    """Commit the run for a period, with the administrator's overrides.

    ``expected_calculation_ids`` carries the ids shown in the preview; a
    mismatch means the inputs changed in between and the commit is refused.
    """

    reference_date: date | None = None
    manual_deductions: dict[UUID, Decimal] = Field(default_factory=dict)
    excluded_employee_ids: list[UUID] = Field(default_factory=list)
    expected_calculation_ids: dict[UUID, UUID] = Field(default_factory=dict)


class PayrollLineResponse(BaseModel):
    """Committed payroll line."""

    model_config = ConfigDict(from_attributes=True)

    payroll_line_id: UUID
    employee_id: UUID
    period_start: date
    period_end: date
    days_worked: int
    leave_days: int
    total_hours: Decimal
    daily_rate: Decimal
    gross_pay: Decimal
    salary_raise: Decimal
    birthday_bonus: Decimal
    total_gross_pay: Decimal
    lateness_minutes: int
    undertime_minutes: int
    lateness_deduction: Decimal
    undertime_deduction: Decimal
    manual_deduction: Decimal
    net_pay: Decimal
    raise_breakdown: dict[str, Decimal]
    status: PayrollStatus
    calculation_id: UUID
    committed_by: str | None = None
    created_at: datetime


class PayrollCommitResponse(BaseModel):
    period_start: date
    period_end: date
    committed_count: int
    lines: list[PayrollLineResponse]


class PayrollStatusUpdate(BaseModel):
    status: PayrollStatus


# ============================================================================
# Salary rule schemas
# ============================================================================


class SalaryRuleCreate(BaseModel):
    name: str
    description: str | None = None
    raise_percentage: Decimal
    start_date: date
    end_date: date
    is_active: bool = True


class SalaryRuleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    raise_percentage: Decimal | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


class SalaryRuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    salary_rule_id: UUID
    name: str
    description: str | None = None
    raise_percentage: Decimal
    start_date: date
    end_date: date
    is_active: bool
    created_at: datetime
