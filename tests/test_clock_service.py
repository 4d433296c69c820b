"""Tests for clock scan persistence and per-employee serialization."""

import asyncio
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from dtr_engine.calculators.clock_events import CloseSegment, OpenSegment, ScanDecision
from dtr_engine.calculators.types import ClockAction
from dtr_engine.errors import (
    ConcurrentScanRejectedError,
    DayAlreadyCompleteError,
    EmployeeNotFoundError,
    NotScheduledError,
    TooEarlyForBreakError,
)
from dtr_engine.models import ClockRecord
from dtr_engine.services import clock_service
from dtr_engine.services.clock_service import ClockService
from tests.helpers import TODAY, manila


async def record_count(session, employee_id) -> int:
    return await session.scalar(
        select(func.count()).select_from(ClockRecord).where(ClockRecord.employee_id == employee_id)
    )


class TestClockService:
    """Scans are decided against stored records and persisted."""

    @pytest.mark.asyncio
    async def test_full_day(self, session, clock, scan_locks, make_employee, add_schedule):
        """Four scans produce two closed segments."""
        employee = await make_employee()
        await add_schedule(employee.employee_id, TODAY)
        service = ClockService(session, clock, scan_locks)

        actions = []
        for advance in (0, 240, 60, 240):
            clock.advance(minutes=advance)
            result = await service.scan(employee.employee_id)
            actions.append(result.action)

        assert actions == [
            ClockAction.CLOCK_IN_WORK,
            ClockAction.CLOCK_OUT_BREAK,
            ClockAction.CLOCK_IN_BREAK,
            ClockAction.CLOCK_OUT_DAY,
        ]
        records = await service.records_for_day(employee.employee_id, TODAY)
        assert [r.segment for r in records] == [1, 2]
        assert records[0].time_in == manila(TODAY, 8)
        assert records[0].time_out == manila(TODAY, 12)
        assert records[1].time_in == manila(TODAY, 13)
        assert records[1].time_out == manila(TODAY, 17)

        clock.advance(minutes=30)
        with pytest.raises(DayAlreadyCompleteError):
            await service.scan(employee.employee_id)

    @pytest.mark.asyncio
    async def test_scan_result(self, session, clock, scan_locks, make_employee, add_schedule):
        employee = await make_employee(first_name="Jose", last_name="Rizal")
        await add_schedule(employee.employee_id, TODAY)

        result = await ClockService(session, clock, scan_locks).scan(employee.employee_id)

        assert result.employee_name == "Jose Rizal"
        assert result.work_date == TODAY
        assert result.segment == 1
        assert result.occurred_at == manila(TODAY, 8)

    @pytest.mark.asyncio
    async def test_not_scheduled_creates_nothing(self, session, clock, scan_locks, make_employee):
        employee = await make_employee()

        with pytest.raises(NotScheduledError):
            await ClockService(session, clock, scan_locks).scan(employee.employee_id)

        assert await record_count(session, employee.employee_id) == 0

    @pytest.mark.asyncio
    async def test_too_early_for_break_leaves_record_open(
        self, session, clock, scan_locks, make_employee, add_schedule
    ):
        employee = await make_employee()
        await add_schedule(employee.employee_id, TODAY)
        service = ClockService(session, clock, scan_locks)
        await service.scan(employee.employee_id)

        clock.advance(minutes=30)
        with pytest.raises(TooEarlyForBreakError):
            await service.scan(employee.employee_id)

        records = await service.records_for_day(employee.employee_id, TODAY)
        assert len(records) == 1
        assert records[0].time_out is None

    @pytest.mark.asyncio
    async def test_unknown_employee(self, session, clock, scan_locks):
        with pytest.raises(EmployeeNotFoundError):
            await ClockService(session, clock, scan_locks).scan(uuid4())

    @pytest.mark.asyncio
    async def test_inactive_employee(self, session, clock, scan_locks, make_employee, add_schedule):
        employee = await make_employee(status="inactive")
        await add_schedule(employee.employee_id, TODAY)

        with pytest.raises(EmployeeNotFoundError):
            await ClockService(session, clock, scan_locks).scan(employee.employee_id)


class TestConcurrentScans:
    """Two scans for the same employee never both apply."""

    @pytest.mark.asyncio
    async def test_double_tap_rejects_loser(
        self, session, session_factory, clock, scan_locks, make_employee, add_schedule
    ):
        employee = await make_employee()
        await add_schedule(employee.employee_id, TODAY)

        async with session_factory() as other_session:
            results = await asyncio.gather(
                ClockService(session, clock, scan_locks).scan(employee.employee_id),
                ClockService(other_session, clock, scan_locks).scan(employee.employee_id),
                return_exceptions=True,
            )

        rejected = [r for r in results if isinstance(r, ConcurrentScanRejectedError)]
        applied = [r for r in results if not isinstance(r, Exception)]
        assert len(rejected) == 1
        assert len(applied) == 1
        assert rejected[0].retryable is True
        assert await record_count(session, employee.employee_id) == 1

    @pytest.mark.asyncio
    async def test_retry_after_rejection_sees_new_state(
        self, session, session_factory, clock, scan_locks, make_employee, add_schedule
    ):
        """Retrying after the winner finished re-reads state."""
        employee = await make_employee()
        await add_schedule(employee.employee_id, TODAY)

        async with session_factory() as other_session:
            await asyncio.gather(
                ClockService(session, clock, scan_locks).scan(employee.employee_id),
                ClockService(other_session, clock, scan_locks).scan(employee.employee_id),
                return_exceptions=True,
            )

        clock.advance(minutes=5)
        with pytest.raises(TooEarlyForBreakError):
            await ClockService(session, clock, scan_locks).scan(employee.employee_id)

    @pytest.mark.asyncio
    async def test_duplicate_segment_insert_rejected_by_database(
        self, session, clock, scan_locks, make_employee, add_schedule, add_clock_record, monkeypatch
    ):
        """A stale decision to reopen segment 1 hits the unique constraint."""
        employee = await make_employee()
        employee_id = employee.employee_id
        await add_schedule(employee.employee_id, TODAY)
        await add_clock_record(employee.employee_id, TODAY, 1, manila(TODAY, 7, 59))

        def stale_decision(records, schedule, now):
            return ScanDecision(ClockAction.CLOCK_IN_WORK, OpenSegment(1, now))

        monkeypatch.setattr(clock_service, "decide_scan", stale_decision)

        with pytest.raises(ConcurrentScanRejectedError):
            await ClockService(session, clock, scan_locks).scan(employee.employee_id)

        assert await record_count(session, employee_id) == 1

    @pytest.mark.asyncio
    async def test_closing_closed_segment_rejected(
        self, session, clock, scan_locks, make_employee, add_schedule, add_clock_record, monkeypatch
    ):
        """Time-out is only written while it is still empty."""
        employee = await make_employee()
        await add_schedule(employee.employee_id, TODAY)
        record = await add_clock_record(
            employee.employee_id, TODAY, 1, manila(TODAY, 6), manila(TODAY, 7)
        )

        def stale_decision(records, schedule, now):
            return ScanDecision(
                ClockAction.CLOCK_OUT_BREAK, CloseSegment(record.clock_record_id, 1, now)
            )

        monkeypatch.setattr(clock_service, "decide_scan", stale_decision)

        with pytest.raises(ConcurrentScanRejectedError):
            await ClockService(session, clock, scan_locks).scan(employee.employee_id)
