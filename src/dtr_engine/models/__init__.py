"""ORM models for the persistence adapter."""

from dtr_engine.models.attendance import ClockRecord, LeaveRecord, ScheduleEntry
from dtr_engine.models.base import Base
from dtr_engine.models.employee import Employee
from dtr_engine.models.payroll import PayrollLine, SalaryRule

__all__ = [
    "Base",
    "ClockRecord",
    "Employee",
    "LeaveRecord",
    "PayrollLine",
    "SalaryRule",
    "ScheduleEntry",
]
