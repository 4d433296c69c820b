"""Services that load records, call the calculators and persist results."""

from dtr_engine.services.attendance_service import AttendanceService
from dtr_engine.services.clock_service import ClockService, ScanResult
from dtr_engine.services.leave_service import LeaveResult, LeaveService, SilEvaluationGate
from dtr_engine.services.locking_service import EmployeeLockRegistry
from dtr_engine.services.payroll_service import PayrollService
from dtr_engine.services.salary_rule_service import SalaryRuleService

__all__ = [
    "AttendanceService",
    "ClockService",
    "EmployeeLockRegistry",
    "LeaveResult",
    "LeaveService",
    "PayrollService",
    "SalaryRuleService",
    "ScanResult",
    "SilEvaluationGate",
]
