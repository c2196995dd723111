"""Jobs Domain: execution log for scheduled jobs"""

from sqlalchemy import Column, DateTime, Enum, Integer, String, Text

from app.models.base import BaseModel, JSONType
from app.models.enums import JobStatus, enum_values


class JobExecution(BaseModel):
    """
    One run of a scheduled job.
    Created as `running` at batch start; only the run that created it finalizes it.
    """
    __tablename__ = "jobs_log"

    job_name = Column(String(100), nullable=False, index=True)
    started_at = Column(DateTime, nullable=False, index=True)
    completed_at = Column(DateTime, nullable=True)
    status = Column(Enum(JobStatus, name="job_status", values_callable=enum_values), nullable=False, index=True)
    records_updated = Column(Integer, nullable=False, default=0)
    error_message = Column(Text, nullable=True)
    metadata_ = Column("metadata", JSONType, nullable=True)

    @property
    def duration_seconds(self):
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()

    def __repr__(self) -> str:
        return f"<JobExecution {self.job_name} - {self.status}>"
