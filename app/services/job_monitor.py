"""Job Monitor Service - missed-run health checks and execution metrics"""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.logging import get_logger
from app.models.enums import JobHealthStatus, JobStatus
from app.models.jobs import JobExecution
from app.schemas.jobs import (
    JobExecutionSummary,
    JobHealthResponse,
    JobMetricsResponse,
    JobMetricsSummary,
    JobPerformance,
)
from app.services.alert_service import AlertService
from app.services.status_job import JOB_NAME
from app.utils.time import get_utc_now, hours_between, to_naive_utc

logger = get_logger(__name__)


class JobMonitorService:
    """Reads jobs_log to answer "did the job run?" and "how is it doing?"."""

    @staticmethod
    async def get_last_execution(db: AsyncSession, job_name: str = JOB_NAME) -> Optional[JobExecution]:
        result = await db.execute(
            select(JobExecution)
            .where(JobExecution.job_name == job_name)
            .order_by(JobExecution.started_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def evaluate_health(
        last: Optional[JobExecution],
        now: datetime,
        job_name: str = JOB_NAME,
        warning_hours: Optional[float] = None,
        alert_hours: Optional[float] = None,
    ) -> JobHealthResponse:
        """
        Classify the time since the last run.

        healthy: <= warning_hours (24h)
        warning: <= alert_hours (25h)
        critical: later than that, or never run
        """
        warning_hours = settings.JOB_HEALTH_WARNING_HOURS if warning_hours is None else warning_hours
        alert_hours = settings.JOB_HEALTH_ALERT_HOURS if alert_hours is None else alert_hours

        if last is None:
            return JobHealthResponse(
                ok=False,
                job_name=job_name,
                status=JobHealthStatus.CRITICAL,
                message="Job has never run",
            )

        hours = round(hours_between(last.started_at, now), 2)
        if hours <= warning_hours:
            health = JobHealthStatus.HEALTHY
            message = f"Last run {hours:.1f} hours ago"
        elif hours <= alert_hours:
            health = JobHealthStatus.WARNING
            message = f"Last run {hours:.1f} hours ago; expected within {warning_hours:g} hours"
        else:
            health = JobHealthStatus.CRITICAL
            message = f"Job has not run in {hours:.1f} hours"

        return JobHealthResponse(
            ok=health != JobHealthStatus.CRITICAL,
            job_name=job_name,
            last_run=last.started_at,
            last_status=last.status,
            hours_since_last_run=hours,
            status=health,
            message=message,
        )

    @staticmethod
    async def check_health(
        db: AsyncSession,
        now: Optional[datetime] = None,
        alert_service: Optional[AlertService] = None,
        job_name: str = JOB_NAME,
    ) -> JobHealthResponse:
        """Evaluate health and send a missed-execution alert when critical."""
        now = to_naive_utc(now) if now is not None else get_utc_now()
        last = await JobMonitorService.get_last_execution(db, job_name)
        health = JobMonitorService.evaluate_health(last, now, job_name)

        if health.status == JobHealthStatus.CRITICAL:
            logger.error("Missed execution detected for %s: %s", job_name, health.message)
            if alert_service is not None:
                await alert_service.job_missed(job_name, health.last_run, health.hours_since_last_run)
        elif health.status == JobHealthStatus.WARNING:
            logger.warning("Job %s is late: %s", job_name, health.message)

        return health

    @staticmethod
    async def get_metrics(
        db: AsyncSession,
        days: int = 30,
        limit: int = 10,
        now: Optional[datetime] = None,
        job_name: str = JOB_NAME,
    ) -> JobMetricsResponse:
        """Aggregate runs started within the last `days` days."""
        now = to_naive_utc(now) if now is not None else get_utc_now()
        since = now - timedelta(days=days)

        result = await db.execute(
            select(JobExecution)
            .where(JobExecution.job_name == job_name, JobExecution.started_at >= since)
            .order_by(JobExecution.started_at.desc())
        )
        executions: List[JobExecution] = list(result.scalars().all())

        successful = sum(1 for e in executions if e.status == JobStatus.SUCCESS)
        failed = sum(1 for e in executions if e.status == JobStatus.FAILED)
        total = len(executions)
        durations = [
            e.duration_seconds
            for e in executions
            if e.status == JobStatus.SUCCESS and e.duration_seconds is not None
        ]

        summary = JobMetricsSummary(
            total_runs=total,
            successful_runs=successful,
            failed_runs=failed,
            success_rate=round(successful / total * 100, 2) if total else 0.0,
            total_records_updated=sum(e.records_updated or 0 for e in executions),
        )
        performance = JobPerformance(
            avg_duration_seconds=round(sum(durations) / len(durations), 2) if durations else None,
            min_duration_seconds=round(min(durations), 2) if durations else None,
            max_duration_seconds=round(max(durations), 2) if durations else None,
        )

        return JobMetricsResponse(
            job_name=job_name,
            days=days,
            summary=summary,
            performance=performance,
            recent_executions=[JobExecutionSummary.model_validate(e) for e in executions[:limit]],
        )
