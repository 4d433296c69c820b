"""Bi-monthly 16th-to-15th pay period derivation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator

from dtr_engine.constants import PAY_PERIOD_START_DAY


@dataclass(frozen=True)
class PayPeriod:
    """Inclusive pay period."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Pay period ends ({self.end}) before it starts ({self.start})")

    def days(self) -> Iterator[date]:
        """Every calendar day in the period, in order."""
        day = self.start
        while day <= self.end:
            yield day
            day += timedelta(days=1)

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    @property
    def months(self) -> set[int]:
        return {self.start.month, self.end.month}


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def pay_period_for(reference: date) -> PayPeriod:
    """Pay period containing ``reference``.

    On or after the 16th: 16th of this month to 15th of next month.
    Before the 16th: 16th of previous month to 15th of this month.
    """
    end_day = PAY_PERIOD_START_DAY - 1
    if reference.day >= PAY_PERIOD_START_DAY:
        next_year, next_month = _shift_month(reference.year, reference.month, 1)
        return PayPeriod(
            start=reference.replace(day=PAY_PERIOD_START_DAY),
            end=date(next_year, next_month, end_day),
        )
    prev_year, prev_month = _shift_month(reference.year, reference.month, -1)
    return PayPeriod(
        start=date(prev_year, prev_month, PAY_PERIOD_START_DAY),
        end=reference.replace(day=end_day),
    )
