"""Scheduled job endpoints: status job trigger, health and metrics"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.config import settings
from app.core.exceptions import JobLoggingError
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.models.enums import JobHealthStatus
from app.schemas.jobs import JobHealthResponse, JobMetricsResponse, StatusJobResponse
from app.schemas.responses import SuccessResponse
from app.services.alert_service import AlertService
from app.services.job_monitor import JobMonitorService
from app.services.status_job import InstallmentStatusJob

logger = get_logger(__name__)

router = APIRouter(dependencies=[Depends(deps.require_job_api_key)])


@router.post("/update-installment-statuses", response_model=StatusJobResponse)
@limiter.limit(settings.RATE_LIMIT_JOB_TRIGGER)
async def update_installment_statuses(
    request: Request,
    job: InstallmentStatusJob = Depends(deps.get_status_job),
) -> Any:
    """
    Mark pending installments overdue for every agency (daily cron, 07:00 UTC).

    Returns 500 with `success: false` when the run failed; a partial failure
    (some agencies failed) still returns 200 with per-agency errors.
    """
    try:
        result = await job.run()
    except JobLoggingError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start job logging",
        )

    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=result.model_dump(mode="json", by_alias=True),
        )
    return result


@router.get("/health", response_model=JobHealthResponse)
async def job_health(
    db: AsyncSession = Depends(deps.get_db),
    alert_service: AlertService = Depends(deps.get_alert_service),
) -> Any:
    """Missed-run check; answers 503 (and alerts) when the job is overdue."""
    health = await JobMonitorService.check_health(db, alert_service=alert_service)
    if health.status == JobHealthStatus.CRITICAL:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=health.model_dump(mode="json", by_alias=True),
        )
    return health


@router.get("/metrics", response_model=SuccessResponse[JobMetricsResponse])
async def job_metrics(
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """Run counts, success rate, durations and the most recent executions."""
    metrics = await JobMonitorService.get_metrics(db, days=days, limit=limit)
    return SuccessResponse(data=metrics, message="Job metrics retrieved")
