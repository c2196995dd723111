"""Integration tests: JobMonitorService health classification and metrics."""

from datetime import datetime, timedelta

import pytest

from app.models.enums import JobHealthStatus, JobStatus
from app.models.jobs import JobExecution
from app.services.job_monitor import JobMonitorService
from app.services.status_job import JOB_NAME

NOW = datetime(2025, 1, 15, 8, 0)


async def add_run(db, hours_ago, status=JobStatus.SUCCESS, duration=None, records=0, job_name=JOB_NAME):
    started = NOW - timedelta(hours=hours_ago)
    run = JobExecution(
        job_name=job_name,
        started_at=started,
        completed_at=started + timedelta(seconds=duration) if duration is not None else None,
        status=status,
        records_updated=records,
    )
    db.add(run)
    await db.commit()
    return run


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "hours_ago, expected",
    [
        (1, JobHealthStatus.HEALTHY),
        (24, JobHealthStatus.HEALTHY),
        (24.5, JobHealthStatus.WARNING),
        (25, JobHealthStatus.WARNING),
        (26, JobHealthStatus.CRITICAL),
    ],
)
async def test_health_thresholds(db, hours_ago, expected):
    await add_run(db, hours_ago, duration=5)

    health = await JobMonitorService.check_health(db, now=NOW)

    assert health.status == expected
    assert health.hours_since_last_run == hours_ago
    assert health.ok is (expected != JobHealthStatus.CRITICAL)


@pytest.mark.asyncio
async def test_never_run_is_critical_and_alerts(db, alert_service):
    health = await JobMonitorService.check_health(db, now=NOW, alert_service=alert_service)

    assert health.status == JobHealthStatus.CRITICAL
    assert health.last_run is None
    assert health.message == "Job has never run"
    alert_service.job_missed.assert_awaited_once_with(JOB_NAME, None, None)


@pytest.mark.asyncio
async def test_late_run_alerts_with_hours(db, alert_service):
    run = await add_run(db, 30, duration=5)

    health = await JobMonitorService.check_health(db, now=NOW, alert_service=alert_service)

    assert health.status == JobHealthStatus.CRITICAL
    alert_service.job_missed.assert_awaited_once_with(JOB_NAME, run.started_at, 30.0)


@pytest.mark.asyncio
async def test_health_uses_most_recent_run_of_the_job(db):
    await add_run(db, 48, status=JobStatus.SUCCESS, duration=5)
    await add_run(db, 3, status=JobStatus.FAILED, duration=1)
    await add_run(db, 1, job_name="some-other-job", duration=1)

    health = await JobMonitorService.check_health(db, now=NOW)

    assert health.status == JobHealthStatus.HEALTHY
    assert health.last_status == JobStatus.FAILED
    assert health.hours_since_last_run == 3


@pytest.mark.asyncio
async def test_metrics_aggregate_window(db):
    await add_run(db, 1, duration=12, records=3)
    await add_run(db, 25, duration=8, records=2)
    await add_run(db, 49, status=JobStatus.FAILED, duration=2)
    await add_run(db, 73, status=JobStatus.RUNNING)
    await add_run(db, 24 * 40, duration=100, records=50)  # outside 30 days

    metrics = await JobMonitorService.get_metrics(db, days=30, limit=3, now=NOW)

    assert metrics.summary.total_runs == 4
    assert metrics.summary.successful_runs == 2
    assert metrics.summary.failed_runs == 1
    assert metrics.summary.success_rate == 50.0
    assert metrics.summary.total_records_updated == 5
    assert metrics.performance.avg_duration_seconds == 10.0
    assert metrics.performance.min_duration_seconds == 8.0
    assert metrics.performance.max_duration_seconds == 12.0
    assert [e.records_updated for e in metrics.recent_executions] == [3, 2, 0]
    assert metrics.recent_executions[0].duration_seconds == 12.0


@pytest.mark.asyncio
async def test_metrics_with_no_runs(db):
    metrics = await JobMonitorService.get_metrics(db, now=NOW)

    assert metrics.summary.total_runs == 0
    assert metrics.summary.success_rate == 0.0
    assert metrics.performance.avg_duration_seconds is None
    assert metrics.recent_executions == []
