"""Employee model."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Date, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from dtr_engine.calculators.types import EmployeeProfile
from dtr_engine.constants import INITIAL_DAY_OFF_BALANCE
from dtr_engine.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee profile, including the leave balances the engine maintains."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    middle_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    position: Mapped[str | None] = mapped_column(String, nullable=True)
    branch: Mapped[str | None] = mapped_column(String, nullable=True)
    daily_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    hire_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    day_off_balance: Mapped[int] = mapped_column(
        Integer, nullable=False, default=INITIAL_DAY_OFF_BALANCE
    )
    sil_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def to_profile(self) -> EmployeeProfile:
        return EmployeeProfile(
            employee_id=self.employee_id,
            full_name=self.full_name,
            hire_date=self.hire_date,
            birth_date=self.birth_date,
            daily_rate=self.daily_rate,
            position=self.position,
            branch=self.branch,
            day_off_balance=self.day_off_balance,
            sil_balance=self.sil_balance,
        )
