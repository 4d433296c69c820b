"""Clock record, schedule and leave models."""

from __future__ import annotations

from datetime import date, datetime, time
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, String, Time, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dtr_engine.calculators.types import ClockEntry, LeaveDay, LeaveKind, ScheduleSlot
from dtr_engine.models.base import AwareDateTime, Base, TimestampMixin


class ClockRecord(Base):
    """One work segment of an employee's business day (DTR entry).

    ``segment`` is 1 before the break and 2 after it; the unique constraint
    makes a double insert for the same segment fail at the database.
    """

    __tablename__ = "clock_record"

    clock_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    segment: Mapped[int] = mapped_column(Integer, nullable=False)
    time_in: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)
    time_out: Mapped[datetime | None] = mapped_column(AwareDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(AwareDateTime(), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "work_date", "segment", name="clock_record_day_segment_unique"
        ),
        CheckConstraint("segment IN (1, 2)", name="clock_record_segment_check"),
    )

    def to_entry(self) -> ClockEntry:
        return ClockEntry(
            record_id=self.clock_record_id,
            time_in=self.time_in,
            time_out=self.time_out,
            created_at=self.created_at,
        )


class ScheduleEntry(Base, TimestampMixin):
    """Scheduled working hours of an employee on one date."""

    __tablename__ = "schedule_entry"

    schedule_entry_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="schedule_entry_day_unique"),
    )

    def to_slot(self) -> ScheduleSlot:
        return ScheduleSlot(
            work_date=self.work_date,
            start_time=self.start_time,
            end_time=self.end_time,
        )


class LeaveRecord(Base, TimestampMixin):
    """A day of leave; excludes the date from normal attendance."""

    __tablename__ = "leave_record"

    leave_record_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    leave_date: Mapped[date] = mapped_column(Date, nullable=False)
    kind: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_date", name="leave_record_day_unique"),
        CheckConstraint(
            "kind IN ('day_off', 'sil', 'emergency')", name="leave_record_kind_check"
        ),
    )

    def to_leave_day(self) -> LeaveDay:
        return LeaveDay(leave_date=self.leave_date, kind=LeaveKind(self.kind))
