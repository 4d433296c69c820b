"""Attendance read endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from dtr_engine.api.dependencies import AppSettings, Clock, DbSession
from dtr_engine.api.schemas import (
    AttendanceSummaryResponse,
    ErrorResponse,
    LiveStatusListResponse,
    LiveStatusResponse,
    TimesheetResponse,
    TimesheetRowResponse,
)
from dtr_engine.services.attendance_service import AttendanceService

router = APIRouter(tags=["attendance"])


@router.get("/attendance/live", response_model=LiveStatusListResponse)
async def live_status(db: DbSession, clock: Clock, settings: AppSettings) -> LiveStatusListResponse:
    """Current clock state and today's classification for every active employee."""
    today = clock.today()
    rows = await AttendanceService(db, clock, settings.grace_period_minutes).live_status(today)
    return LiveStatusListResponse(
        work_date=today,
        items=[LiveStatusResponse.model_validate(row) for row in rows],
    )


@router.get(
    "/attendance/summary",
    response_model=AttendanceSummaryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def attendance_summary(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    start: date,
    end: date,
    employee_id: UUID | None = None,
) -> AttendanceSummaryResponse:
    """Classification counts over a date range."""
    service = AttendanceService(db, clock, settings.grace_period_minutes)
    try:
        counts = await service.attendance_summary(start, end, employee_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    return AttendanceSummaryResponse(start=start, end=end, employee_id=employee_id, counts=counts)


@router.get(
    "/employees/{employee_id}/timesheet",
    response_model=TimesheetResponse,
    responses={404: {"model": ErrorResponse}},
)
async def monthly_timesheet(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    employee_id: Annotated[UUID, Path()],
    year: Annotated[int, Query(ge=2000, le=2100)],
    month: Annotated[int, Query(ge=1, le=12)],
) -> TimesheetResponse:
    """Monthly DTR for one employee."""
    service = AttendanceService(db, clock, settings.grace_period_minutes)
    rows = await service.monthly_timesheet(employee_id, year, month)
    return TimesheetResponse(
        employee_id=employee_id,
        year=year,
        month=month,
        rows=[TimesheetRowResponse.model_validate(row) for row in rows],
    )
