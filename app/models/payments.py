"""Payments Domain: payment plans and their installments"""

from decimal import Decimal

from sqlalchemy import Boolean, Column, Date, Enum, ForeignKey, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship

from app.models.base import AgencyScopedMixin, BaseModel
from app.models.enums import InstallmentStatus, PaymentPlanStatus, enum_values


class PaymentPlan(BaseModel, AgencyScopedMixin):
    """
    A student's payment plan for one enrollment.

    The commission columns are caches refreshed by the status job whenever one
    of the plan's installments changes status.
    """
    __tablename__ = "payment_plans"

    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=True, index=True)

    total_course_value = Column(Numeric(12, 2), nullable=False)
    materials_cost = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    admin_fees = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    other_fees = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    commission_rate_percent = Column(Numeric(5, 2), nullable=False)
    gst_inclusive = Column(Boolean, nullable=False, default=True)

    status = Column(
        Enum(PaymentPlanStatus, name="payment_plan_status", values_callable=enum_values),
        nullable=False,
        default=PaymentPlanStatus.ACTIVE,
        index=True,
    )

    # Cached commission figures
    commissionable_value = Column(Numeric(12, 2), nullable=True)
    expected_commission = Column(Numeric(12, 2), nullable=True)
    earned_commission = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    outstanding_commission = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))

    # Relationships
    agency = relationship("Agency", back_populates="payment_plans")
    student = relationship("Student", back_populates="payment_plans", lazy="raise")
    installments = relationship(
        "Installment",
        back_populates="payment_plan",
        cascade="all, delete-orphan",
        order_by="Installment.installment_number",
    )

    def __repr__(self) -> str:
        return f"<PaymentPlan {self.total_course_value} - {self.status}>"


class Installment(BaseModel):
    """
    One scheduled payment of a plan (0 = initial payment, 1..N = regular).
    """
    __tablename__ = "installments"

    payment_plan_id = Column(
        Uuid(as_uuid=True), ForeignKey("payment_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    installment_number = Column(Integer, nullable=False, default=0)

    amount = Column(Numeric(12, 2), nullable=False)
    student_due_date = Column(Date, nullable=False, index=True)
    college_due_date = Column(Date, nullable=True)

    status = Column(
        Enum(InstallmentStatus, name="installment_status", values_callable=enum_values),
        nullable=False,
        default=InstallmentStatus.DRAFT,
        index=True,
    )
    paid_date = Column(Date, nullable=True)
    paid_amount = Column(Numeric(12, 2), nullable=True)
    generates_commission = Column(Boolean, nullable=False, default=True)

    # Relationships
    payment_plan = relationship("PaymentPlan", back_populates="installments", lazy="raise")

    def __repr__(self) -> str:
        return f"<Installment #{self.installment_number} {self.amount} - {self.status}>"
