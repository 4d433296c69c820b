"""Payroll run endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from dtr_engine.api.dependencies import ActorId, AppSettings, Clock, DbSession
from dtr_engine.api.schemas import (
    ErrorResponse,
    PayrollCommitRequest,
    PayrollCommitResponse,
    PayrollLinePreview,
    PayrollLineResponse,
    PayrollPreviewRequest,
    PayrollPreviewResponse,
    PayrollStatusUpdate,
)
from dtr_engine.calculators.payroll import PayrollPreview
from dtr_engine.services.payroll_service import PayrollService

router = APIRouter(tags=["payroll"])


def _preview_response(preview: PayrollPreview) -> PayrollPreviewResponse:
    return PayrollPreviewResponse(
        period_start=preview.period.start,
        period_end=preview.period.end,
        lines=[PayrollLinePreview.model_validate(line) for line in preview.lines],
        errors=preview.errors,
        total_net_selected=preview.total_net_selected,
    )


@router.post(
    "/payroll/preview",
    response_model=PayrollPreviewResponse,
    responses={422: {"model": ErrorResponse}},
)
async def preview_payroll(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    payload: PayrollPreviewRequest,
) -> PayrollPreviewResponse:
    """Compute the payroll run for a pay period without writing anything."""
    preview = await PayrollService(db, settings, clock).preview(payload.reference_date)
    return _preview_response(preview)


@router.post(
    "/payroll/commit",
    response_model=PayrollCommitResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def commit_payroll(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    actor_id: ActorId,
    payload: PayrollCommitRequest,
) -> PayrollCommitResponse:
    """Recompute the run, apply the overrides and persist the selected lines."""
    service = PayrollService(db, settings, clock)
    preview = await service.preview(payload.reference_date)
    service.apply_adjustments(
        preview,
        manual_deductions=payload.manual_deductions,
        excluded=set(payload.excluded_employee_ids),
        expected_calculation_ids=payload.expected_calculation_ids,
    )
    lines = await service.commit(preview, committed_by=actor_id)
    return PayrollCommitResponse(
        period_start=preview.period.start,
        period_end=preview.period.end,
        committed_count=len(lines),
        lines=[PayrollLineResponse.model_validate(line) for line in lines],
    )


@router.patch(
    "/payroll/lines/{line_id}/status",
    response_model=PayrollLineResponse,
    responses={404: {"model": ErrorResponse}},
)
async def update_line_status(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    line_id: Annotated[UUID, Path()],
    payload: PayrollStatusUpdate,
) -> PayrollLineResponse:
    line = await PayrollService(db, settings, clock).update_status(line_id, payload.status)
    return PayrollLineResponse.model_validate(line)


@router.get(
    "/employees/{employee_id}/payroll-lines",
    response_model=list[PayrollLineResponse],
)
async def list_employee_lines(
    db: DbSession,
    clock: Clock,
    settings: AppSettings,
    employee_id: Annotated[UUID, Path()],
) -> list[PayrollLineResponse]:
    """Committed payroll history of one employee, newest period first."""
    lines = await PayrollService(db, settings, clock).lines_for_employee(employee_id)
    return [PayrollLineResponse.model_validate(line) for line in lines]
