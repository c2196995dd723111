"""
Commission Calculator

Pure functions computing plan commission figures. No I/O.

- Commissionable value = course value minus non-commissionable fees
- Expected commission  = commissionable base x rate, where the base of a
  GST-exclusive plan is deflated by the 10% GST factor
- Earned / outstanding = expected commission pro-rated by paid / still-due amounts

All use Decimal with ROUND_HALF_UP, applied once at each function's output.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List

from app.core.exceptions import InvalidPlanError
from app.core.logging import get_logger
from app.models.enums import InstallmentStatus

logger = get_logger(__name__)

GST_FACTOR = Decimal("1.10")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

OUTSTANDING_STATUSES = (InstallmentStatus.PENDING, InstallmentStatus.OVERDUE)


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents using ROUND_HALF_UP."""
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def to_decimal(value) -> Decimal:
    """Coerce numbers from the store or callers to Decimal; None counts as 0."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class CommissionBreakdown:
    """All cached commission figures for one plan."""

    commissionable_value: Decimal
    expected_commission: Decimal
    earned_commission: Decimal
    outstanding_commission: Decimal
    warnings: List[str] = field(default_factory=list)


# =============================================================================
# Unrounded building blocks
# =============================================================================


def _commissionable_value_exact(total_course_value, materials_cost, admin_fees, other_fees, warnings=None) -> Decimal:
    value = (
        to_decimal(total_course_value)
        - to_decimal(materials_cost)
        - to_decimal(admin_fees)
        - to_decimal(other_fees)
    )
    if value < ZERO:
        message = (
            f"Non-commissionable fees exceed course value {to_decimal(total_course_value)}; "
            "commissionable value clamped to 0"
        )
        logger.warning(message)
        if warnings is not None:
            warnings.append(message)
        return ZERO
    return value


def _expected_commission_exact(commissionable_value, commission_rate_percent, gst_inclusive: bool) -> Decimal:
    rate = to_decimal(commission_rate_percent)
    if rate < ZERO or rate > HUNDRED:
        raise InvalidPlanError(f"Commission rate {rate}% is outside 0-100")

    base = to_decimal(commissionable_value)
    if not gst_inclusive:
        base = base / GST_FACTOR
    return base * (rate / HUNDRED)


def _plan_expected_exact(plan, warnings=None) -> Decimal:
    value = _commissionable_value_exact(
        plan.total_course_value, plan.materials_cost, plan.admin_fees, plan.other_fees, warnings
    )
    return _expected_commission_exact(value, plan.commission_rate_percent, plan.gst_inclusive)


def _require_course_value(plan) -> Decimal:
    total = to_decimal(plan.total_course_value)
    if total == ZERO:
        raise InvalidPlanError(
            "Payment plan has zero total course value", plan_id=getattr(plan, "id", None)
        )
    return total


def _commission_bearing(installments: Iterable) -> list:
    return [i for i in installments if getattr(i, "generates_commission", True) is not False]


def _paid_total(installments: Iterable) -> Decimal:
    return sum(
        (to_decimal(i.paid_amount) for i in installments if i.status == InstallmentStatus.PAID),
        ZERO,
    )


def _outstanding_total(installments: Iterable) -> Decimal:
    return sum(
        (to_decimal(i.amount) for i in installments if i.status in OUTSTANDING_STATUSES),
        ZERO,
    )


# =============================================================================
# Public API
# =============================================================================


def commissionable_value(total_course_value, materials_cost=None, admin_fees=None, other_fees=None) -> Decimal:
    """
    Course value eligible for commission.

    Example: 10000 - 500 - 200 - 100 = 9200.00
    Negative results are clamped to 0 with a logged data-quality warning.
    """
    return quantize_money(
        _commissionable_value_exact(total_course_value, materials_cost, admin_fees, other_fees)
    )


def expected_commission(commissionable_value, commission_rate_percent, gst_inclusive: bool = True) -> Decimal:
    """
    Expected commission for a commissionable value.

    Example (GST inclusive):  9200 x 15% = 1380.00
    Example (GST exclusive): (9200 / 1.10) x 15% = 1254.55

    Raises:
        InvalidPlanError: rate outside 0-100
    """
    return quantize_money(_expected_commission_exact(commissionable_value, commission_rate_percent, gst_inclusive))


def earned_commission(plan, installments: Iterable) -> Decimal:
    """
    Commission earned so far: expected x (sum of paid amounts / course value).

    Raises:
        InvalidPlanError: zero course value or invalid rate
    """
    installments = _commission_bearing(installments)
    total = _require_course_value(plan)
    return quantize_money(_plan_expected_exact(plan) * (_paid_total(installments) / total))


def outstanding_commission(plan, installments: Iterable) -> Decimal:
    """
    Commission still to be earned: expected x (pending + overdue amounts / course value).

    Raises:
        InvalidPlanError: zero course value or invalid rate
    """
    installments = _commission_bearing(installments)
    total = _require_course_value(plan)
    return quantize_money(_plan_expected_exact(plan) * (_outstanding_total(installments) / total))


def calculate_plan_commission(plan, installments: Iterable) -> CommissionBreakdown:
    """
    Compute every cached commission figure for a plan in one pass.

    Only installments flagged generates_commission contribute to the
    earned/outstanding sums.

    Raises:
        InvalidPlanError: zero course value or invalid rate
    """
    commission_bearing = _commission_bearing(installments)
    warnings: List[str] = []

    total = _require_course_value(plan)
    value = _commissionable_value_exact(
        plan.total_course_value, plan.materials_cost, plan.admin_fees, plan.other_fees, warnings
    )
    expected = _expected_commission_exact(value, plan.commission_rate_percent, plan.gst_inclusive)

    return CommissionBreakdown(
        commissionable_value=quantize_money(value),
        expected_commission=quantize_money(expected),
        earned_commission=quantize_money(expected * (_paid_total(commission_bearing) / total)),
        outstanding_commission=quantize_money(expected * (_outstanding_total(commission_bearing) / total)),
        warnings=warnings,
    )


def apply_commission_breakdown(plan, breakdown: CommissionBreakdown) -> bool:
    """Copy a breakdown onto a plan's cached columns; True if any value changed."""
    changed = False
    for attr in ("commissionable_value", "expected_commission", "earned_commission", "outstanding_commission"):
        new_value = getattr(breakdown, attr)
        if getattr(plan, attr) != new_value:
            setattr(plan, attr, new_value)
            changed = True
    return changed
