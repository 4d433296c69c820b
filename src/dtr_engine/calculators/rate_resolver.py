"""Daily rate resolution.

Rate selection priority:
1. The rate assigned on the employee profile
2. The branch x position rate table
"""

from __future__ import annotations

from decimal import Decimal

from dtr_engine.calculators.types import EmployeeProfile
from dtr_engine.constants import DAILY_RATES
from dtr_engine.errors import RateNotFoundError


def _normalize(value: str | None) -> str | None:
    return value.strip().lower() if value else None


def table_rate(branch: str | None, position: str | None) -> Decimal | None:
    """Look up the standard rate for a branch and position."""
    branch_rates = DAILY_RATES.get(_normalize(branch) or "")
    if branch_rates is None:
        return None
    return branch_rates.get(_normalize(position) or "")


def resolve_daily_rate(profile: EmployeeProfile) -> Decimal:
    """Resolve the daily rate used for an employee's payroll.

    Raises:
        RateNotFoundError: neither the profile nor the table yields a
            positive rate
    """
    if profile.daily_rate is not None and profile.daily_rate > 0:
        return profile.daily_rate

    rate = table_rate(profile.branch, profile.position)
    if rate is None:
        raise RateNotFoundError(profile.employee_id, profile.branch, profile.position)
    return rate
