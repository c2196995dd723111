"""
Unit Tests for the Commission Calculator

Tests verify calculations against known expected values.
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.exceptions import InvalidPlanError
from app.models.enums import InstallmentStatus
from app.services.commission_calculator import (
    CommissionBreakdown,
    apply_commission_breakdown,
    calculate_plan_commission,
    commissionable_value,
    earned_commission,
    expected_commission,
    outstanding_commission,
    quantize_money,
)


def make_plan(**overrides):
    values = dict(
        id="plan-1",
        total_course_value=Decimal("10000.00"),
        materials_cost=Decimal("0"),
        admin_fees=Decimal("0"),
        other_fees=Decimal("0"),
        commission_rate_percent=Decimal("15"),
        gst_inclusive=True,
        commissionable_value=None,
        expected_commission=None,
        earned_commission=Decimal("0"),
        outstanding_commission=Decimal("0"),
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def make_installment(amount, status, paid_amount=None, generates_commission=True):
    return SimpleNamespace(
        amount=Decimal(amount),
        status=status,
        paid_amount=Decimal(paid_amount) if paid_amount is not None else None,
        generates_commission=generates_commission,
    )


class TestQuantizeMoney:
    """Test the money rounding utility."""

    def test_rounds_up_at_half(self):
        assert quantize_money(Decimal("0.005")) == Decimal("0.01")

    def test_rounds_down_below_half(self):
        assert quantize_money(Decimal("0.004")) == Decimal("0.00")

    def test_truncates_extra_precision(self):
        assert quantize_money(Decimal("1254.545454")) == Decimal("1254.55")


class TestCommissionableValue:
    def test_subtracts_non_commissionable_fees(self):
        """$10,000 - $500 - $200 - $100 = $9,200"""
        assert commissionable_value(Decimal("10000"), Decimal("500"), Decimal("200"), Decimal("100")) == Decimal("9200.00")

    def test_missing_fees_count_as_zero(self):
        assert commissionable_value(Decimal("10000")) == Decimal("10000.00")

    def test_negative_result_clamped_to_zero(self):
        assert commissionable_value(Decimal("100"), Decimal("150")) == Decimal("0.00")

    def test_accepts_floats_and_ints(self):
        assert commissionable_value(1000, 0.5) == Decimal("999.50")


class TestExpectedCommission:
    def test_gst_inclusive(self):
        """$9,200 x 15% = $1,380.00"""
        assert expected_commission(Decimal("9200"), Decimal("15"), True) == Decimal("1380.00")

    def test_gst_exclusive(self):
        """($9,200 / 1.10) x 15% = $1,254.55"""
        assert expected_commission(Decimal("9200"), Decimal("15"), False) == Decimal("1254.55")

    def test_zero_rate(self):
        assert expected_commission(Decimal("9200"), Decimal("0")) == Decimal("0.00")

    def test_full_rate(self):
        assert expected_commission(Decimal("9200"), Decimal("100")) == Decimal("9200.00")

    @pytest.mark.parametrize("rate", [Decimal("-1"), Decimal("100.01")])
    def test_rate_outside_range_rejected(self, rate):
        with pytest.raises(InvalidPlanError):
            expected_commission(Decimal("9200"), rate)

    def test_rounds_half_up(self):
        """$0.05 x 50% = $0.025 -> $0.03"""
        assert expected_commission(Decimal("0.05"), Decimal("50")) == Decimal("0.03")


class TestEarnedAndOutstanding:
    def test_earned_is_prorated_by_paid_amounts(self):
        plan = make_plan()
        installments = [
            make_installment("2000", InstallmentStatus.PAID, paid_amount="2000"),
            make_installment("3000", InstallmentStatus.OVERDUE),
            make_installment("5000", InstallmentStatus.PENDING),
        ]
        # 1500 x 2000 / 10000
        assert earned_commission(plan, installments) == Decimal("300.00")

    def test_outstanding_counts_pending_and_overdue(self):
        plan = make_plan()
        installments = [
            make_installment("2000", InstallmentStatus.PAID, paid_amount="2000"),
            make_installment("3000", InstallmentStatus.OVERDUE),
            make_installment("5000", InstallmentStatus.PENDING),
            make_installment("700", InstallmentStatus.CANCELLED),
            make_installment("300", InstallmentStatus.DRAFT),
        ]
        # 1500 x 8000 / 10000
        assert outstanding_commission(plan, installments) == Decimal("1200.00")

    def test_partial_payment_uses_paid_amount(self):
        plan = make_plan()
        installments = [make_installment("2000", InstallmentStatus.PAID, paid_amount="1000")]
        assert earned_commission(plan, installments) == Decimal("150.00")

    def test_non_commission_installments_excluded(self):
        plan = make_plan()
        installments = [
            make_installment("2000", InstallmentStatus.PAID, paid_amount="2000"),
            make_installment("500", InstallmentStatus.PAID, paid_amount="500", generates_commission=False),
            make_installment("500", InstallmentStatus.PENDING, generates_commission=False),
        ]
        assert earned_commission(plan, installments) == Decimal("300.00")
        assert outstanding_commission(plan, installments) == Decimal("0.00")

    def test_no_installments(self):
        plan = make_plan()
        assert earned_commission(plan, []) == Decimal("0.00")
        assert outstanding_commission(plan, []) == Decimal("0.00")

    def test_zero_course_value_rejected(self):
        plan = make_plan(total_course_value=Decimal("0"))
        with pytest.raises(InvalidPlanError) as exc_info:
            earned_commission(plan, [])
        assert exc_info.value.plan_id == "plan-1"


class TestCalculatePlanCommission:
    def test_full_breakdown(self):
        plan = make_plan(
            materials_cost=Decimal("500"),
            admin_fees=Decimal("200"),
            other_fees=Decimal("100"),
        )
        installments = [
            make_installment("2000", InstallmentStatus.PAID, paid_amount="2000"),
            make_installment("3000", InstallmentStatus.OVERDUE),
            make_installment("5000", InstallmentStatus.PENDING),
        ]

        breakdown = calculate_plan_commission(plan, installments)

        assert breakdown.commissionable_value == Decimal("9200.00")
        assert breakdown.expected_commission == Decimal("1380.00")
        assert breakdown.earned_commission == Decimal("276.00")
        assert breakdown.outstanding_commission == Decimal("1104.00")
        assert breakdown.warnings == []

    def test_gst_exclusive_rounds_once_per_output(self):
        plan = make_plan(
            materials_cost=Decimal("800"),
            gst_inclusive=False,
        )
        installments = [make_installment("10000", InstallmentStatus.PAID, paid_amount="10000")]

        breakdown = calculate_plan_commission(plan, installments)

        assert breakdown.expected_commission == Decimal("1254.55")
        assert breakdown.earned_commission == Decimal("1254.55")

    def test_clamped_value_reported_as_warning(self):
        plan = make_plan(total_course_value=Decimal("100"), materials_cost=Decimal("150"))

        breakdown = calculate_plan_commission(plan, [])

        assert breakdown.commissionable_value == Decimal("0.00")
        assert breakdown.expected_commission == Decimal("0.00")
        assert len(breakdown.warnings) == 1
        assert "clamped" in breakdown.warnings[0]

    def test_zero_course_value_rejected(self):
        with pytest.raises(InvalidPlanError):
            calculate_plan_commission(make_plan(total_course_value=Decimal("0")), [])


class TestApplyCommissionBreakdown:
    def test_copies_values_and_reports_change(self):
        plan = make_plan()
        breakdown = CommissionBreakdown(
            commissionable_value=Decimal("9200.00"),
            expected_commission=Decimal("1380.00"),
            earned_commission=Decimal("276.00"),
            outstanding_commission=Decimal("1104.00"),
        )

        assert apply_commission_breakdown(plan, breakdown) is True
        assert plan.expected_commission == Decimal("1380.00")
        assert plan.outstanding_commission == Decimal("1104.00")

    def test_unchanged_values_report_no_change(self):
        plan = make_plan(
            commissionable_value=Decimal("9200.00"),
            expected_commission=Decimal("1380.00"),
            earned_commission=Decimal("276.00"),
            outstanding_commission=Decimal("1104.00"),
        )
        breakdown = CommissionBreakdown(
            commissionable_value=Decimal("9200.00"),
            expected_commission=Decimal("1380.00"),
            earned_commission=Decimal("276.00"),
            outstanding_commission=Decimal("1104.00"),
        )

        assert apply_commission_breakdown(plan, breakdown) is False
