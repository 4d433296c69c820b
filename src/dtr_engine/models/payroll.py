"""Salary rule and committed payroll line models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from dtr_engine.calculators.types import PayrollStatus, RaiseRule
from dtr_engine.models.base import Base, TimestampMixin


class SalaryRule(Base, TimestampMixin):
    """Percentage raise on the daily rate over an inclusive date range."""

    __tablename__ = "salary_rule"

    salary_rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(String, nullable=True)
    raise_percentage: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="salary_rule_dates_check"),
        CheckConstraint("raise_percentage > 0", name="salary_rule_raise_positive"),
    )

    def to_rule(self) -> RaiseRule:
        return RaiseRule(
            name=self.name,
            raise_percentage=self.raise_percentage,
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=self.is_active,
        )


class PayrollLine(Base, TimestampMixin):
    """Committed payroll for one employee and one pay period.

    Immutable after commit except for ``status``.
    """

    __tablename__ = "payroll_line"

    payroll_line_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="RESTRICT"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)

    days_worked: Mapped[int] = mapped_column(Integer, nullable=False)
    leave_days: Mapped[int] = mapped_column(Integer, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    daily_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    gross_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    salary_raise: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    birthday_bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_gross_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    lateness_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    lateness_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    undertime_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    manual_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # rule name -> amount (as string, to keep exact cents in JSON)
    raise_breakdown: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    status: Mapped[str] = mapped_column(String, nullable=False, default=PayrollStatus.PAID.value)
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)
    committed_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "period_start", "period_end", name="payroll_line_period_unique"
        ),
        CheckConstraint("period_end >= period_start", name="payroll_line_dates_check"),
        CheckConstraint(
            "status IN ('Paid', 'Delayed', 'Unpaid')", name="payroll_line_status_check"
        ),
        CheckConstraint("net_pay >= 0", name="payroll_line_net_non_negative"),
    )
