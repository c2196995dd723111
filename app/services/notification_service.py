"""Notification Service - overdue payment alerts for agency staff"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotificationDataError
from app.core.logging import get_logger
from app.models.communication import Notification
from app.models.enums import NotificationType
from app.services.commission_calculator import quantize_money, to_decimal

logger = get_logger(__name__)

OVERDUE_LINK = "/payments/plans?status=overdue"


def format_amount(amount) -> str:
    """$1234.50 style, two decimals, no thousands separator."""
    return f"${quantize_money(to_decimal(amount)):.2f}"


def format_due_date(due_date: date) -> str:
    """MM/DD/YYYY"""
    return due_date.strftime("%m/%d/%Y")


def format_overdue_message(student_name: str, amount, due_date: date) -> str:
    return f"Payment overdue: {student_name} - {format_amount(amount)} due {format_due_date(due_date)}"


@dataclass
class NotificationResult:
    """Outcome of one notification pass."""

    created: List[Notification] = field(default_factory=list)
    skipped: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def created_count(self) -> int:
        return len(self.created)


class NotificationService:
    """Builds and persists deduplicated overdue notifications."""

    @staticmethod
    async def find_overdue_notification(db: AsyncSession, installment_id: UUID) -> Optional[Notification]:
        """Existing overdue notification keyed by metadata.installment_id, if any."""
        result = await db.execute(
            select(Notification)
            .where(
                Notification.type == NotificationType.OVERDUE_PAYMENT,
                Notification.metadata_["installment_id"].as_string() == str(installment_id),
            )
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    def build_overdue_notification(installment) -> Notification:
        """
        Build (but do not persist) the notification for an overdue installment.

        Requires installment.payment_plan and payment_plan.student to be loaded.

        Raises:
            NotificationDataError: plan, student, agency, amount or due date missing
        """
        plan = getattr(installment, "payment_plan", None)
        if plan is None:
            raise NotificationDataError(f"Installment {installment.id}: Missing payment plan data")
        if plan.agency_id is None:
            raise NotificationDataError(f"Installment {installment.id}: Missing agency_id")

        student = getattr(plan, "student", None)
        if student is None:
            raise NotificationDataError(f"Installment {installment.id}: Missing student data")
        student_name = f"{student.first_name or ''} {student.last_name or ''}".strip()
        if not student_name:
            raise NotificationDataError(f"Installment {installment.id}: Student has no name")

        if installment.amount is None or installment.student_due_date is None:
            raise NotificationDataError(f"Installment {installment.id}: Missing amount or due date")

        amount = quantize_money(to_decimal(installment.amount))
        return Notification(
            agency_id=plan.agency_id,
            user_id=None,
            type=NotificationType.OVERDUE_PAYMENT,
            message=format_overdue_message(student_name, amount, installment.student_due_date),
            link=OVERDUE_LINK,
            is_read=False,
            metadata_={
                "installment_id": str(installment.id),
                "payment_plan_id": str(plan.id),
                "student_id": str(student.id),
                "amount": str(amount),
                "due_date": installment.student_due_date.isoformat(),
            },
        )

    @staticmethod
    async def generate_overdue_notifications(
        db: AsyncSession,
        installments: Iterable,
    ) -> NotificationResult:
        """
        Create one overdue notification per installment unless one already exists.

        Runs inside the caller's transaction; nothing is committed here. A
        missing student/plan join is recorded in `errors` and processing
        continues with the next installment.
        """
        result = NotificationResult()
        seen: Set[str] = set()

        for installment in installments:
            key = str(installment.id)
            if key in seen:
                result.skipped += 1
                continue
            seen.add(key)

            existing = await NotificationService.find_overdue_notification(db, installment.id)
            if existing is not None:
                logger.info("Notification already exists for installment %s", installment.id)
                result.skipped += 1
                continue

            try:
                notification = NotificationService.build_overdue_notification(installment)
            except NotificationDataError as exc:
                logger.warning(str(exc))
                result.errors.append(str(exc))
                continue

            db.add(notification)
            # flush so later dedup lookups in this session see the row
            await db.flush()
            result.created.append(notification)
            logger.info("Created notification for installment %s", installment.id)

        return result
