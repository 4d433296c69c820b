"""Attendance and leave policy constants.

These are company policy rather than deployment configuration, so they are
not read from the environment.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

# Clock events
MIN_WORK_BEFORE_BREAK = timedelta(minutes=60)
REOPEN_WINDOW = timedelta(hours=3)
BREAK_DURATION = timedelta(hours=1)
MAX_SEGMENTS_PER_DAY = 2

# Calendar
WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday (date.weekday())

# Leave
INITIAL_DAY_OFF_BALANCE = 3
MAX_DAY_OFFS_PER_MONTH = 3
SIL_ENTITLEMENT = 5
SIL_BLOCK_DAYS = 5

# Payroll
PAY_PERIOD_START_DAY = 16
BIRTHDAY_BONUS_LABEL = "Birthday Bonus"

# Daily rates by branch and position
DAILY_RATES: dict[str, dict[str, Decimal]] = {
    "cabanatuan": {
        "branch officer": Decimal("575"),
        "team leader": Decimal("565"),
        "regular staff": Decimal("560"),
    },
    "solano": {
        "branch officer": Decimal("550"),
        "team leader": Decimal("500"),
        "regular staff": Decimal("500"),
    },
}
