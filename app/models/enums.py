"""Centralized Enum Definitions"""

import enum


# Payments
class PaymentPlanStatus(str, enum.Enum):
    """Payment plan lifecycle status"""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InstallmentStatus(str, enum.Enum):
    """
    Installment lifecycle status.
    draft -> pending -> overdue are automated; paid/cancelled are set externally.
    """
    DRAFT = "draft"
    PENDING = "pending"
    OVERDUE = "overdue"
    PAID = "paid"
    CANCELLED = "cancelled"


# Notifications
class NotificationType(str, enum.Enum):
    """Notification categories"""
    OVERDUE_PAYMENT = "overdue_payment"


# Jobs
class JobStatus(str, enum.Enum):
    """Execution log status"""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class JobHealthStatus(str, enum.Enum):
    """Health of a scheduled job relative to its expected cadence"""
    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


# Activity log
class ActivityAction(str, enum.Enum):
    """System and user actions recorded in the activity feed"""
    MARKED_OVERDUE = "marked_overdue"


def enum_values(enum_cls) -> list:
    """Persist enum values (lowercase strings) rather than member names"""
    return [member.value for member in enum_cls]
