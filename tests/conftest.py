"""Pytest fixtures for DTR engine tests."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from dtr_engine.clock import FixedClock
from dtr_engine.config import Settings
from dtr_engine.database import create_schema, make_session_factory
from dtr_engine.models import ClockRecord, Employee, LeaveRecord, ScheduleEntry
from dtr_engine.services.leave_service import SilEvaluationGate
from dtr_engine.services.locking_service import leave_lock_registry, scan_lock_registry
from tests.helpers import TODAY, manila

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def settings() -> Settings:
    """Settings used by service and API tests."""
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="test",
        business_timezone="Asia/Manila",
        grace_period_minutes=15,
        deduction_rate_per_minute=Decimal("1.60"),
        host="127.0.0.1",
        port=8000,
        debug=False,
        birthday_bonuses={"team leader": Decimal("1000")},
    )


@pytest.fixture
def clock() -> FixedClock:
    """Business clock frozen at 08:00 on TODAY."""
    return FixedClock(manila(TODAY, 8))


@pytest.fixture
def scan_locks():
    return scan_lock_registry()


@pytest.fixture
def leave_locks():
    return leave_lock_registry()


@pytest.fixture
def sil_gate() -> SilEvaluationGate:
    return SilEvaluationGate()


@pytest.fixture
async def engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory persisting an active employee."""

    async def factory(**overrides) -> Employee:
        values = {
            "employee_id": uuid4(),
            "employee_number": f"EMP-{uuid4().hex[:8]}",
            "first_name": "Maria",
            "last_name": "Santos",
            "position": "Regular Staff",
            "branch": "Solano",
            "daily_rate": Decimal("500.00"),
            "hire_date": date(2020, 1, 6),
            "birth_date": date(1990, 7, 1),
        }
        values.update(overrides)
        employee = Employee(**values)
        session.add(employee)
        await session.commit()
        return employee

    return factory


@pytest.fixture
def add_schedule(session: AsyncSession):
    """Factory persisting a schedule entry (08:00-17:00 by default)."""

    async def factory(employee_id, day: date, start: time = time(8), end: time = time(17)):
        schedule = ScheduleEntry(employee_id=employee_id, work_date=day, start_time=start, end_time=end)
        session.add(schedule)
        await session.commit()
        return schedule

    return factory


@pytest.fixture
def add_clock_record(session: AsyncSession):
    """Factory persisting one clock segment."""

    async def factory(employee_id, day: date, segment: int, time_in: datetime, time_out: datetime | None = None):
        record = ClockRecord(
            employee_id=employee_id,
            work_date=day,
            segment=segment,
            time_in=time_in,
            time_out=time_out,
            created_at=time_in,
        )
        session.add(record)
        await session.commit()
        return record

    return factory


@pytest.fixture
def add_leave(session: AsyncSession):
    """Factory persisting a leave record."""

    async def factory(employee_id, day: date, kind: str = "day_off"):
        leave = LeaveRecord(employee_id=employee_id, leave_date=day, kind=kind)
        session.add(leave)
        await session.commit()
        return leave

    return factory
