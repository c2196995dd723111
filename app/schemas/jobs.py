"""Job Schemas: status job results, health and metrics"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models.enums import JobHealthStatus, JobStatus


class CamelModel(BaseModel):
    """Serializes with camelCase keys for the cron caller and dashboards."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Status job ---
class AgencyJobResult(CamelModel):
    agency_id: UUID
    status: JobStatus = JobStatus.SUCCESS
    timezone: Optional[str] = None
    local_time: Optional[str] = None
    transitioned: int = 0
    installment_ids: List[UUID] = Field(default_factory=list)
    notifications_created: int = 0
    notifications_skipped: int = 0
    due_soon: int = 0
    plans_recomputed: int = 0
    attempts: int = 1
    errors: List[str] = Field(default_factory=list)
    notification_errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == JobStatus.FAILED


class StatusJobResponse(CamelModel):
    """
    Summary returned by the trigger endpoint.

    Example:
        {
            "success": true,
            "recordsUpdated": 3,
            "notificationsCreated": 3,
            "agencies": [{"agencyId": "...", "transitioned": 3, "notificationsCreated": 3, "errors": []}]
        }
    """
    success: bool
    job_id: Optional[UUID] = None
    status: JobStatus
    records_updated: int = 0
    notifications_created: int = 0
    agencies: List[AgencyJobResult] = Field(default_factory=list)
    notification_errors: Optional[List[str]] = None
    error: Optional[str] = None


# --- Monitoring ---
class JobHealthResponse(CamelModel):
    ok: bool
    job_name: str
    last_run: Optional[datetime] = None
    last_status: Optional[JobStatus] = None
    hours_since_last_run: Optional[float] = None
    status: JobHealthStatus
    message: str


class JobExecutionSummary(CamelModel):
    id: UUID
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None
    records_updated: int = 0
    status: JobStatus
    error_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class JobMetricsSummary(CamelModel):
    total_runs: int = 0
    successful_runs: int = 0
    failed_runs: int = 0
    success_rate: float = 0.0
    total_records_updated: int = 0


class JobPerformance(CamelModel):
    avg_duration_seconds: Optional[float] = None
    min_duration_seconds: Optional[float] = None
    max_duration_seconds: Optional[float] = None


class JobMetricsResponse(CamelModel):
    job_name: str
    days: int
    summary: JobMetricsSummary
    performance: JobPerformance
    recent_executions: List[JobExecutionSummary] = Field(default_factory=list)
