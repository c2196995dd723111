"""Installment Status Job - daily pending -> overdue batch run

One run:
1. logs a `running` row in jobs_log
2. processes every agency (bounded parallelism); each agency is one
   transaction: transitions, activity log, plan commission caches, notifications
3. retries an agency's whole unit on transient errors (1s, 2s, 4s)
4. finalizes the jobs_log row and alerts when the run failed

The run is `failed` only when every agency failed or a top-level step did.
Re-running on the same local day is a no-op: transitions require `pending` and
notifications are deduplicated per installment.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.exceptions import AgencyTimeoutError, InvalidPlanError, JobLoggingError
from app.core.logging import get_logger
from app.database import AsyncSessionLocal
from app.models.activity import ActivityLog
from app.models.agency import Agency
from app.models.enums import ActivityAction, InstallmentStatus, JobStatus, PaymentPlanStatus
from app.models.jobs import JobExecution
from app.models.payments import Installment, PaymentPlan
from app.schemas.jobs import AgencyJobResult, StatusJobResponse
from app.services.alert_service import AlertService
from app.services.commission_calculator import apply_commission_breakdown, calculate_plan_commission, quantize_money
from app.services.notification_service import NotificationService
from app.services.status_engine import clock_for_agency, evaluate_agency
from app.utils.retry import execute_with_retry
from app.utils.time import get_utc_now, get_utc_now_aware, to_naive_utc

logger = get_logger(__name__)

JOB_NAME = "update-installment-statuses"


@dataclass(frozen=True)
class AgencySnapshot:
    """Agency settings read once at the start of a run."""

    id: UUID
    name: str
    timezone: str
    overdue_cutoff_time: Optional[time]
    due_soon_threshold_days: int

    @classmethod
    def from_model(cls, agency: Agency) -> "AgencySnapshot":
        return cls(
            id=agency.id,
            name=agency.name,
            timezone=agency.timezone,
            overdue_cutoff_time=agency.overdue_cutoff_time,
            due_soon_threshold_days=agency.due_soon_threshold_days or 0,
        )


class InstallmentStatusJob:
    """Execution controller for the daily installment status run."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        *,
        alert_service: Optional[AlertService] = None,
        clock: Callable[[], datetime] = get_utc_now_aware,
        max_retries: Optional[int] = None,
        initial_delay: Optional[float] = None,
        max_concurrency: Optional[int] = None,
        agency_timeout: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.session_factory = session_factory or AsyncSessionLocal
        self.alert_service = alert_service or AlertService()
        self.clock = clock
        self.max_retries = settings.JOB_MAX_RETRIES if max_retries is None else max_retries
        self.initial_delay = settings.JOB_RETRY_INITIAL_DELAY if initial_delay is None else initial_delay
        self.max_concurrency = max(1, settings.JOB_MAX_CONCURRENCY if max_concurrency is None else max_concurrency)
        self.agency_timeout = settings.JOB_AGENCY_TIMEOUT_SECONDS if agency_timeout is None else agency_timeout
        self.sleep = sleep

    async def _retry(self, fn, description: str, log_extra: Optional[dict] = None):
        return await execute_with_retry(
            fn,
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            sleep=self.sleep,
            description=description,
            log_extra=log_extra,
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def run(self) -> StatusJobResponse:
        """
        Execute one batch run.

        Raises:
            JobLoggingError: the jobs_log row could not be created
            Exception: the jobs_log row could not be finalized
        """
        now = self.clock()
        job_id = uuid4()
        try:
            await self._retry(lambda: self._start_execution(job_id, now), "start job log")
        except Exception as exc:
            logger.exception("Failed to start job logging: %s", exc)
            raise JobLoggingError("Failed to start job logging") from exc
        log_extra = {"job_id": job_id}
        logger.info("Status job started", extra=log_extra)

        try:
            agencies = await self._retry(self._load_agencies, "load agencies", log_extra)
            results = await self._process_agencies(agencies, now, log_extra)
        except Exception as exc:
            logger.exception("Status job failed: %s", exc, extra=log_extra)
            error_message = str(exc) or type(exc).__name__
            await self._retry(
                lambda: self._finish_execution(
                    job_id,
                    JobStatus.FAILED,
                    records_updated=0,
                    error_message=error_message,
                    metadata={"error_type": type(exc).__name__},
                ),
                "finalize job log",
                log_extra,
            )
            await self.alert_service.job_failed(JOB_NAME, job_id, error_message)
            return StatusJobResponse(
                success=False,
                job_id=job_id,
                status=JobStatus.FAILED,
                error=error_message,
            )

        return await self._complete(job_id, now, results, log_extra)

    async def _complete(
        self,
        job_id: UUID,
        now: datetime,
        results: List[AgencyJobResult],
        log_extra: dict,
    ) -> StatusJobResponse:
        records_updated = sum(r.transitioned for r in results)
        notifications_created = sum(r.notifications_created for r in results)
        notification_errors = [err for r in results for err in r.notification_errors]
        failed = [r for r in results if r.failed]

        status = JobStatus.FAILED if results and len(failed) == len(results) else JobStatus.SUCCESS
        error_message = None
        if status == JobStatus.FAILED:
            first_errors = "; ".join(f"{r.agency_id}: {r.errors[0]}" for r in failed[:3] if r.errors)
            error_message = f"All {len(results)} agencies failed. {first_errors}".strip()

        metadata: Dict[str, Any] = {
            "run_at": now.isoformat(),
            "agencies": [r.model_dump(mode="json") for r in results],
            "total_agencies_processed": len(results),
            "failed_agencies": len(failed),
            "notifications_created": notifications_created,
            "notification_errors": notification_errors or None,
        }

        await self._retry(
            lambda: self._finish_execution(
                job_id,
                status,
                records_updated=records_updated,
                error_message=error_message,
                metadata=metadata,
            ),
            "finalize job log",
            log_extra,
        )

        logger.info(
            "Status job finished: %s, %d installments marked overdue, %d notifications, %d/%d agencies failed",
            status.value,
            records_updated,
            notifications_created,
            len(failed),
            len(results),
            extra=log_extra,
        )
        if failed:
            logger.error(
                "Agencies failed in status job: %s",
                ", ".join(str(r.agency_id) for r in failed),
                extra=log_extra,
            )
        if status == JobStatus.FAILED:
            await self.alert_service.job_failed(
                JOB_NAME, job_id, error_message, failed_agencies=len(failed), total_agencies=len(results)
            )

        return StatusJobResponse(
            success=status == JobStatus.SUCCESS,
            job_id=job_id,
            status=status,
            records_updated=records_updated,
            notifications_created=notifications_created,
            agencies=results,
            notification_errors=notification_errors or None,
            error=error_message,
        )

    # ------------------------------------------------------------------
    # Execution log
    # ------------------------------------------------------------------

    async def _start_execution(self, job_id: UUID, now: datetime) -> None:
        async with self.session_factory() as db:
            # a retry after a lost commit acknowledgement finds the row already written
            if await db.get(JobExecution, job_id) is not None:
                return
            job = JobExecution(
                id=job_id,
                job_name=JOB_NAME,
                started_at=to_naive_utc(now),
                status=JobStatus.RUNNING,
                records_updated=0,
            )
            db.add(job)
            await db.commit()

    async def _finish_execution(
        self,
        job_id: UUID,
        status: JobStatus,
        records_updated: int,
        error_message: Optional[str],
        metadata: Dict[str, Any],
    ) -> None:
        async with self.session_factory() as db:
            job = await db.get(JobExecution, job_id)
            if job is None:
                raise RuntimeError(f"Job log {job_id} disappeared before it was finalized")
            job.status = status
            job.completed_at = get_utc_now()
            job.records_updated = records_updated
            job.error_message = error_message
            job.metadata_ = metadata
            await db.commit()

    # ------------------------------------------------------------------
    # Agencies
    # ------------------------------------------------------------------

    async def _load_agencies(self) -> List[AgencySnapshot]:
        async with self.session_factory() as db:
            result = await db.execute(select(Agency).order_by(Agency.created_at, Agency.id))
            return [AgencySnapshot.from_model(agency) for agency in result.scalars().all()]

    async def _process_agencies(
        self,
        agencies: List[AgencySnapshot],
        now: datetime,
        log_extra: dict,
    ) -> List[AgencyJobResult]:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def guarded(agency: AgencySnapshot) -> AgencyJobResult:
            async with semaphore:
                return await self._run_agency(agency, now, log_extra)

        return list(await asyncio.gather(*(guarded(agency) for agency in agencies)))

    async def _run_agency(self, agency: AgencySnapshot, now: datetime, log_extra: dict) -> AgencyJobResult:
        """Run one agency's unit with timeout and retries; failures are contained here."""
        extra = {**log_extra, "agency_id": agency.id}
        attempts = 0

        async def unit() -> AgencyJobResult:
            nonlocal attempts
            attempts += 1
            try:
                return await asyncio.wait_for(self._process_agency(agency, now, extra), timeout=self.agency_timeout)
            except asyncio.TimeoutError as exc:
                raise AgencyTimeoutError(
                    f"Agency {agency.id} exceeded {self.agency_timeout}s execution budget"
                ) from exc

        try:
            result = await self._retry(unit, f"agency {agency.id}", extra)
        except Exception as exc:
            logger.exception("Agency unit failed after %d attempt(s): %s", attempts, exc, extra=extra)
            return AgencyJobResult(
                agency_id=agency.id,
                status=JobStatus.FAILED,
                timezone=agency.timezone,
                attempts=attempts,
                errors=[f"{type(exc).__name__}: {exc}"],
            )

        result.attempts = attempts
        return result

    async def _process_agency(self, agency: AgencySnapshot, now: datetime, log_extra: dict) -> AgencyJobResult:
        """One agency's atomic unit of work."""
        clock = clock_for_agency(agency, now)
        result = AgencyJobResult(
            agency_id=agency.id,
            timezone=agency.timezone,
            local_time=clock.local_now.isoformat(),
        )
        horizon = clock.today + timedelta(days=max(agency.due_soon_threshold_days, 0))

        async with self.session_factory() as db:
            async with db.begin():
                candidates = await self._load_candidates(db, agency.id, horizon)
                decision = evaluate_agency(candidates, clock, agency.due_soon_threshold_days)
                result.due_soon = decision.due_soon_count

                newly_overdue = decision.newly_overdue
                for installment in newly_overdue:
                    installment.status = InstallmentStatus.OVERDUE
                    db.add(self._activity_entry(agency.id, installment))
                # transitions must be visible before caches and notifications are derived from them
                await db.flush()

                result.transitioned = len(newly_overdue)
                result.installment_ids = [i.id for i in newly_overdue]

                if newly_overdue:
                    await self._recompute_plans(db, {i.payment_plan_id for i in newly_overdue}, result, log_extra)

                    notifications = await NotificationService.generate_overdue_notifications(db, newly_overdue)
                    result.notifications_created = notifications.created_count
                    result.notifications_skipped = notifications.skipped
                    result.notification_errors.extend(notifications.errors)
                    result.errors.extend(notifications.errors)

        if result.transitioned:
            logger.info(
                "Marked %d installment(s) overdue (local time %s)",
                result.transitioned,
                result.local_time,
                extra=log_extra,
            )
        return result

    @staticmethod
    async def _load_candidates(db: AsyncSession, agency_id: UUID, horizon) -> List[Installment]:
        """Pending installments of the agency's active plans due on or before the horizon."""
        result = await db.execute(
            select(Installment)
            .join(PaymentPlan, Installment.payment_plan_id == PaymentPlan.id)
            .where(
                PaymentPlan.agency_id == agency_id,
                PaymentPlan.status == PaymentPlanStatus.ACTIVE,
                Installment.status == InstallmentStatus.PENDING,
                Installment.student_due_date <= horizon,
            )
            .options(selectinload(Installment.payment_plan).selectinload(PaymentPlan.student))
            .order_by(Installment.student_due_date, Installment.installment_number)
            .with_for_update(of=Installment)
        )
        return list(result.scalars().all())

    @staticmethod
    def _activity_entry(agency_id: UUID, installment: Installment) -> ActivityLog:
        plan = installment.payment_plan
        student = plan.student if plan is not None else None
        student_name = student.full_name if student is not None else "unknown student"
        amount = quantize_money(installment.amount)
        return ActivityLog(
            agency_id=agency_id,
            user_id=None,
            entity_type="installment",
            entity_id=installment.id,
            action=ActivityAction.MARKED_OVERDUE.value,
            description=f"System marked installment {amount} as overdue for {student_name}",
            metadata_={
                "student_name": student_name,
                "amount": str(amount),
                "installment_id": str(installment.id),
                "payment_plan_id": str(installment.payment_plan_id),
                "original_due_date": installment.student_due_date.isoformat(),
            },
        )

    @staticmethod
    async def _recompute_plans(db: AsyncSession, plan_ids, result: AgencyJobResult, log_extra: dict) -> None:
        """Refresh cached commission figures; an invalid plan is reported and left as is."""
        plans = await db.execute(
            select(PaymentPlan)
            .where(PaymentPlan.id.in_(plan_ids))
            .options(selectinload(PaymentPlan.installments), selectinload(PaymentPlan.student))
        )
        for plan in plans.scalars().all():
            try:
                breakdown = calculate_plan_commission(plan, plan.installments)
            except InvalidPlanError as exc:
                message = f"Plan {plan.id}: {exc}"
                logger.warning(message, extra=log_extra)
                result.errors.append(message)
                continue
            apply_commission_breakdown(plan, breakdown)
            result.plans_recomputed += 1
            result.warnings.extend(f"Plan {plan.id}: {w}" for w in breakdown.warnings)


async def run_daily_status_job(session_factory: Optional[async_sessionmaker] = None) -> StatusJobResponse:
    """Run the status job once with configured settings."""
    return await InstallmentStatusJob(session_factory).run()
