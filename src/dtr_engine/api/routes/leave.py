"""Leave request endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from dtr_engine.api.dependencies import Clock, DbSession
from dtr_engine.api.schemas import (
    DayOffRequest,
    ErrorResponse,
    LeaveResponse,
    SilEvaluationResponse,
    SilRequest,
)
from dtr_engine.services.leave_service import LeaveService

router = APIRouter(prefix="/employees/{employee_id}", tags=["leave"])

_ERRORS = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


@router.post(
    "/leave/day-off",
    response_model=LeaveResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def request_day_off(
    db: DbSession,
    clock: Clock,
    employee_id: Annotated[UUID, Path()],
    payload: DayOffRequest,
) -> LeaveResponse:
    result = await LeaveService(db, clock).request_day_off(employee_id, payload.dates)
    return LeaveResponse.model_validate(result)


@router.post(
    "/leave/emergency",
    response_model=LeaveResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def request_emergency_leave(
    db: DbSession,
    clock: Clock,
    employee_id: Annotated[UUID, Path()],
) -> LeaveResponse:
    """Emergency leave for today; may borrow against future credits."""
    result = await LeaveService(db, clock).request_emergency_leave(employee_id)
    return LeaveResponse.model_validate(result)


@router.post(
    "/leave/sil",
    response_model=LeaveResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
)
async def request_sil(
    db: DbSession,
    clock: Clock,
    employee_id: Annotated[UUID, Path()],
    payload: SilRequest,
) -> LeaveResponse:
    result = await LeaveService(db, clock).request_sil(employee_id, payload.start_date)
    return LeaveResponse.model_validate(result)


@router.post(
    "/sil-evaluation",
    response_model=SilEvaluationResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def evaluate_sil(
    db: DbSession,
    clock: Clock,
    employee_id: Annotated[UUID, Path()],
) -> SilEvaluationResponse:
    """Grant this service year's SIL entitlement if it is due."""
    balance = await LeaveService(db, clock).evaluate_sil_entitlement(employee_id)
    return SilEvaluationResponse(
        employee_id=employee_id,
        granted=balance is not None,
        sil_balance=balance,
    )
