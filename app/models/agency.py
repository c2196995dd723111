"""Agency Domain: tenants and the students they manage"""

from datetime import time

from sqlalchemy import Column, Integer, String, Time
from sqlalchemy.orm import relationship

from app.models.base import AgencyScopedMixin, BaseModel

DEFAULT_TIMEZONE = "Australia/Brisbane"
DEFAULT_OVERDUE_CUTOFF = time(17, 0)
DEFAULT_DUE_SOON_THRESHOLD_DAYS = 4


class Agency(BaseModel):
    """
    Tenant. Holds the local-time settings the status job evaluates against.
    Read-only for the job.
    """
    __tablename__ = "agencies"

    name = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    overdue_cutoff_time = Column(Time, nullable=False, default=DEFAULT_OVERDUE_CUTOFF)
    due_soon_threshold_days = Column(Integer, nullable=False, default=DEFAULT_DUE_SOON_THRESHOLD_DAYS)

    # Relationships
    students = relationship("Student", back_populates="agency")
    payment_plans = relationship("PaymentPlan", back_populates="agency")

    def __repr__(self) -> str:
        return f"<Agency {self.name} ({self.timezone})>"


class Student(BaseModel, AgencyScopedMixin):
    """Student record owned by the CRUD layer; read for notification text."""
    __tablename__ = "students"

    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)

    # Relationships
    agency = relationship("Agency", back_populates="students")
    payment_plans = relationship("PaymentPlan", back_populates="student")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Student {self.full_name}>"
