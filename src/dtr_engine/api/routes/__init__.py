"""API routes."""

from dtr_engine.api.routes.attendance import router as attendance_router
from dtr_engine.api.routes.clock import router as clock_router
from dtr_engine.api.routes.health import router as health_router
from dtr_engine.api.routes.leave import router as leave_router
from dtr_engine.api.routes.payroll import router as payroll_router
from dtr_engine.api.routes.salary_rules import router as salary_rules_router

__all__ = [
    "attendance_router",
    "clock_router",
    "health_router",
    "leave_router",
    "payroll_router",
    "salary_rules_router",
]
