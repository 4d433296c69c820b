"""Leave entitlement and request validation rules.

Pure functions; ``LeaveService`` loads the inputs and persists the results.
"""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta
from typing import Iterable, Mapping

from dtr_engine.calculators.attendance import is_weekend
from dtr_engine.calculators.types import LeaveKind
from dtr_engine.constants import MAX_DAY_OFFS_PER_MONTH, SIL_BLOCK_DAYS, SIL_ENTITLEMENT
from dtr_engine.errors import (
    AlreadyRequestedTodayError,
    DayUnavailableError,
    InsufficientBalanceError,
    MonthlyCapExceededError,
    NotEligibleError,
    PastDateError,
)


def anniversary(hire_date: date, year: int) -> date:
    """Hire month/day in ``year``; Feb 29 hires fall back to Feb 28."""
    try:
        return hire_date.replace(year=year)
    except ValueError:
        return hire_date.replace(year=year, day=28)


def sil_eligibility_date(hire_date: date) -> date:
    return anniversary(hire_date, hire_date.year + 1)


def is_sil_eligible(hire_date: date | None, today: date) -> bool:
    return hire_date is not None and today >= sil_eligibility_date(hire_date)


def service_year_window(hire_date: date, today: date) -> tuple[date, date]:
    """Current service year as ``[last_anniversary, next_anniversary)``."""
    last = anniversary(hire_date, today.year)
    if last > today:
        last = anniversary(hire_date, today.year - 1)
    return last, anniversary(hire_date, last.year + 1)


def evaluate_sil_grant(
    hire_date: date | None,
    sil_balance: int,
    sil_leave_dates: Iterable[date],
    today: date,
) -> int | None:
    """New SIL balance to store, or None when nothing should change.

    Grants the full entitlement once per service year: only when the
    employee is eligible, has not taken SIL within the current service year,
    and is not already at the full balance.
    """
    if not is_sil_eligible(hire_date, today):
        return None
    start, end = service_year_window(hire_date, today)
    if any(start <= d < end for d in sil_leave_dates):
        return None
    if sil_balance == SIL_ENTITLEMENT:
        return None
    return SIL_ENTITLEMENT


def validate_day_off_request(
    requested: Iterable[date],
    today: date,
    scheduled_dates: set[date],
    existing_leaves: Mapping[date, LeaveKind],
    balance: int,
) -> list[date]:
    """Validate a day-off request and return the dates to record, sorted.

    ``existing_leaves`` must cover at least every month touched by the
    request so the monthly cap counts already-recorded day-offs.
    """
    dates = sorted(set(requested))
    if not dates:
        raise ValueError("At least one date must be requested")

    for day in dates:
        if day < today:
            raise PastDateError(day)

    for day in dates:
        if day in existing_leaves:
            raise DayUnavailableError(day, "a leave is already recorded")
        if day not in scheduled_dates:
            reason = "rest day" if is_weekend(day) else "no work schedule"
            raise DayUnavailableError(day, reason)

    per_month = Counter(
        (d.year, d.month)
        for d, kind in existing_leaves.items()
        if kind is LeaveKind.DAY_OFF
    )
    per_month.update((d.year, d.month) for d in dates)
    for (year, month), count in sorted(per_month.items()):
        if count > MAX_DAY_OFFS_PER_MONTH and any(
            (d.year, d.month) == (year, month) for d in dates
        ):
            raise MonthlyCapExceededError(year, month, MAX_DAY_OFFS_PER_MONTH)

    if len(dates) > balance:
        raise InsufficientBalanceError(len(dates), max(balance, 0))
    return dates


def validate_emergency_leave(today: date, existing_leaves: Mapping[date, LeaveKind]) -> date:
    """Emergency leave is always allowed once per day, for today only."""
    if today in existing_leaves:
        raise AlreadyRequestedTodayError(today)
    return today


def sil_block_dates(start: date) -> list[date]:
    """The SIL block: consecutive calendar days from ``start``.

    Weekends are not skipped.
    """
    return [start + timedelta(days=offset) for offset in range(SIL_BLOCK_DAYS)]


def validate_sil_request(
    start: date,
    today: date,
    hire_date: date | None,
    sil_balance: int,
    existing_leaves: Mapping[date, LeaveKind],
) -> list[date]:
    """Validate a SIL request and return the block of dates to record."""
    if start < today:
        raise PastDateError(start)
    if not is_sil_eligible(hire_date, today):
        eligible_on = sil_eligibility_date(hire_date) if hire_date else today
        raise NotEligibleError(eligible_on)
    if sil_balance <= 0:
        raise InsufficientBalanceError(SIL_BLOCK_DAYS, 0)

    block = sil_block_dates(start)
    for day in block:
        if day in existing_leaves:
            raise DayUnavailableError(day, "a leave is already recorded")
    return block
