"""Clock scan endpoint."""

from fastapi import APIRouter, status

from dtr_engine.api.dependencies import Clock, DbSession
from dtr_engine.api.schemas import ErrorResponse, ScanRequest, ScanResponse
from dtr_engine.services.clock_service import ClockService

router = APIRouter(prefix="/clock", tags=["clock"])


@router.post(
    "/scans",
    response_model=ScanResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def record_scan(db: DbSession, clock: Clock, payload: ScanRequest) -> ScanResponse:
    """Apply the next clock action for the scanned employee."""
    result = await ClockService(db, clock).scan(payload.employee_id)
    return ScanResponse.model_validate(result)
