"""Health check endpoints."""

import logging
from datetime import datetime

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from dtr_engine.api.dependencies import Clock, DbSession
from dtr_engine.models import ClockRecord, Employee, ScheduleEntry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Tables a scan touches; the service cannot accept scans without them
SCAN_TABLES = (Employee, ScheduleEntry, ClockRecord)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    business_time: datetime
    database: str
    active_employees: int | None = None


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
)
async def health_check(db: DbSession, clock: Clock) -> HealthResponse:
    """Check API and database health, reporting the business clock."""
    active: int | None = None
    try:
        active = await db.scalar(
            select(func.count()).select_from(Employee).where(Employee.status == "active")
        )
    except SQLAlchemyError:
        logger.exception("Database health check failed")

    healthy = active is not None
    return HealthResponse(
        status="healthy" if healthy else "degraded",
        business_time=clock.now(),
        database="healthy" if healthy else "unhealthy",
        active_employees=active,
    )


@router.get(
    "/ready",
    status_code=status.HTTP_200_OK,
    responses={503: {"description": "Scan tables are not reachable"}},
)
async def readiness_check(db: DbSession):
    """Ready once every table a scan reads and writes can be queried."""
    missing: list[str] = []
    for model in SCAN_TABLES:
        try:
            await db.execute(select(func.count()).select_from(model))
        except SQLAlchemyError:
            logger.warning("Readiness check failed on %s", model.__tablename__)
            await db.rollback()
            missing.append(model.__tablename__)

    if missing:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "unavailable": missing},
        )
    return {"status": "ready"}


@router.get("/live", status_code=status.HTTP_200_OK)
async def liveness_check() -> dict[str, str]:
    """Liveness check for container orchestration."""
    return {"status": "alive"}
