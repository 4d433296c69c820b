"""Clock event state machine for a single employee-day.

A business day holds at most two clock records (before and after the break).
Each scan advances the day through four ordered actions:

    NO_RECORD            -> CLOCK_IN_WORK    (requires a schedule)
    WORKING              -> CLOCK_OUT_BREAK  (requires 60 minutes of work)
    ON_BREAK             -> CLOCK_IN_BREAK
    WORKING_AFTER_BREAK  -> CLOCK_OUT_DAY
    DAY_COMPLETE         -> rejected (DayAlreadyComplete / TooLateToReopen)

Deciding is pure; the caller persists the returned mutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence
from uuid import UUID

from dtr_engine.calculators.types import ClockAction, ClockEntry, ClockState, ScheduleSlot
from dtr_engine.constants import (
    BREAK_DURATION,
    MAX_SEGMENTS_PER_DAY,
    MIN_WORK_BEFORE_BREAK,
    REOPEN_WINDOW,
)
from dtr_engine.errors import (
    DataIntegrityError,
    DayAlreadyCompleteError,
    NotScheduledError,
    TooEarlyForBreakError,
    TooLateToReopenError,
)


@dataclass(frozen=True)
class OpenSegment:
    """Create clock record number ``segment`` with ``time_in``."""

    segment: int
    time_in: datetime


@dataclass(frozen=True)
class CloseSegment:
    """Set ``time_out`` on an existing open record."""

    record_id: UUID | None
    segment: int
    time_out: datetime


@dataclass(frozen=True)
class ScanDecision:
    action: ClockAction
    mutation: OpenSegment | CloseSegment


def order_records(records: Sequence[ClockEntry]) -> list[ClockEntry]:
    """Order a day's records by creation time and validate their shape."""
    ordered = sorted(records, key=lambda r: r.created_at)
    if len(ordered) > MAX_SEGMENTS_PER_DAY:
        raise DataIntegrityError(
            f"Found {len(ordered)} clock records for one day; at most "
            f"{MAX_SEGMENTS_PER_DAY} are allowed"
        )
    for index, record in enumerate(ordered, start=1):
        if record.time_in is None:
            raise DataIntegrityError(f"Clock record #{index} has no time-in")
        if index < len(ordered) and record.time_out is None:
            raise DataIntegrityError(
                f"Clock record #{index} is still open but a later record exists"
            )
    return ordered


class ClockEventStateMachine:
    """Maps today's records onto the employee's current state and next action."""

    NEXT_ACTION: dict[ClockState, ClockAction] = {
        ClockState.NO_RECORD: ClockAction.CLOCK_IN_WORK,
        ClockState.WORKING: ClockAction.CLOCK_OUT_BREAK,
        ClockState.ON_BREAK: ClockAction.CLOCK_IN_BREAK,
        ClockState.WORKING_AFTER_BREAK: ClockAction.CLOCK_OUT_DAY,
    }

    @classmethod
    def state_of(cls, records: Sequence[ClockEntry]) -> ClockState:
        """Derive the day's state from its (at most two) records."""
        ordered = order_records(records)
        if not ordered:
            return ClockState.NO_RECORD
        if len(ordered) == 1:
            return ClockState.WORKING if ordered[0].is_open else ClockState.ON_BREAK
        return ClockState.WORKING_AFTER_BREAK if ordered[1].is_open else ClockState.DAY_COMPLETE

    @classmethod
    def next_action(cls, state: ClockState) -> ClockAction | None:
        return cls.NEXT_ACTION.get(state)

    @classmethod
    def decide(
        cls,
        records: Sequence[ClockEntry],
        schedule: ScheduleSlot | None,
        now: datetime,
    ) -> ScanDecision:
        """Decide what a scan at ``now`` does.

        Raises:
            NotScheduledError: first scan of a day with no schedule
            TooEarlyForBreakError: break attempted within 60 minutes of time-in
            DayAlreadyCompleteError: day closed less than 3 hours ago
            TooLateToReopenError: day closed more than 3 hours ago
            DataIntegrityError: the existing records are malformed
        """
        ordered = order_records(records)
        state = cls.state_of(ordered)

        if state is ClockState.NO_RECORD:
            if schedule is None:
                raise NotScheduledError(now.date())
            return ScanDecision(ClockAction.CLOCK_IN_WORK, OpenSegment(1, now))

        if state is ClockState.WORKING:
            first = ordered[0]
            worked = now - first.time_in
            if worked < MIN_WORK_BEFORE_BREAK:
                raise TooEarlyForBreakError(MIN_WORK_BEFORE_BREAK - worked)
            return ScanDecision(
                ClockAction.CLOCK_OUT_BREAK, CloseSegment(first.record_id, 1, now)
            )

        if state is ClockState.ON_BREAK:
            return ScanDecision(ClockAction.CLOCK_IN_BREAK, OpenSegment(2, now))

        if state is ClockState.WORKING_AFTER_BREAK:
            return ScanDecision(
                ClockAction.CLOCK_OUT_DAY, CloseSegment(ordered[1].record_id, 2, now)
            )

        if now - ordered[1].time_out > REOPEN_WINDOW:
            raise TooLateToReopenError()
        raise DayAlreadyCompleteError()


def decide_scan(
    records: Sequence[ClockEntry],
    schedule: ScheduleSlot | None,
    now: datetime,
) -> ScanDecision:
    """Module-level shortcut for ``ClockEventStateMachine.decide``."""
    return ClockEventStateMachine.decide(records, schedule, now)


def break_seconds_remaining(records: Sequence[ClockEntry], now: datetime) -> int | None:
    """Seconds left in the one-hour break, or None when not on break.

    Advisory only; the state machine does not enforce a break length.
    """
    ordered = order_records(records)
    if ClockEventStateMachine.state_of(ordered) is not ClockState.ON_BREAK:
        return None
    elapsed = now - ordered[0].time_out
    return max(0, int((BREAK_DURATION - elapsed).total_seconds()))


def current_clock_state(records: Sequence[ClockEntry]) -> ClockState:
    """State of the day for the live view."""
    return ClockEventStateMachine.state_of(records)
