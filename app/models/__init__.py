"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, AgencyScopedMixin
from app.models.enums import *
from app.models.agency import Agency, Student
from app.models.payments import PaymentPlan, Installment
from app.models.communication import Notification
from app.models.jobs import JobExecution
from app.models.activity import ActivityLog


__all__ = [
    # Base classes
    "BaseModel",
    "AgencyScopedMixin",

    # Agency
    "Agency",
    "Student",

    # Payments
    "PaymentPlan",
    "Installment",

    # Communication
    "Notification",

    # Jobs
    "JobExecution",

    # Activity
    "ActivityLog",
]
