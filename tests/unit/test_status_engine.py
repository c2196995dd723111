"""Unit tests for the status transition engine (pure logic, no DB)."""

from datetime import date, datetime, time, timezone
from types import SimpleNamespace

import pytest

from app.core.exceptions import AgencyConfigurationError
from app.models.enums import InstallmentStatus, PaymentPlanStatus
from app.services.status_engine import (
    agency_local_now,
    build_agency_clock,
    clock_for_agency,
    evaluate_agency,
    is_due_soon,
    is_overdue,
    resolve_timezone,
)

CUTOFF = time(17, 0)
TODAY = date(2025, 1, 15)


def local(hour, minute=0, day=15):
    return datetime(2025, 1, day, hour, minute)


def installment(due, status=InstallmentStatus.PENDING, plan_status=PaymentPlanStatus.ACTIVE, id=None):
    return SimpleNamespace(
        id=id or f"inst-{due.isoformat()}",
        status=status,
        student_due_date=due,
        payment_plan=SimpleNamespace(status=plan_status),
    )


# --- is_overdue ---

def test_past_due_pending_is_overdue():
    assert is_overdue(InstallmentStatus.PENDING, date(2025, 1, 14), local(9), CUTOFF) is True


def test_due_today_before_cutoff_is_not_overdue():
    assert is_overdue(InstallmentStatus.PENDING, TODAY, local(16, 59), CUTOFF) is False


def test_due_today_at_cutoff_is_not_overdue():
    assert is_overdue(InstallmentStatus.PENDING, TODAY, local(17, 0), CUTOFF) is False


def test_due_today_after_cutoff_is_overdue():
    assert is_overdue(InstallmentStatus.PENDING, TODAY, local(17, 1), CUTOFF) is True


def test_future_due_date_is_not_overdue():
    assert is_overdue(InstallmentStatus.PENDING, date(2025, 1, 16), local(23, 59), CUTOFF) is False


@pytest.mark.parametrize(
    "status",
    [InstallmentStatus.DRAFT, InstallmentStatus.OVERDUE, InstallmentStatus.PAID, InstallmentStatus.CANCELLED],
)
def test_only_pending_can_become_overdue(status):
    assert is_overdue(status, date(2024, 1, 1), local(12), CUTOFF) is False


def test_plain_string_status_is_accepted():
    assert is_overdue("pending", date(2025, 1, 14), local(9), CUTOFF) is True


# --- is_due_soon ---

def test_due_within_threshold_is_due_soon():
    assert is_due_soon(InstallmentStatus.PENDING, date(2025, 1, 18), local(9), CUTOFF, 4) is True


def test_due_at_threshold_is_not_due_soon():
    assert is_due_soon(InstallmentStatus.PENDING, date(2025, 1, 19), local(9), CUTOFF, 4) is False


def test_due_today_before_cutoff_is_due_soon():
    assert is_due_soon(InstallmentStatus.PENDING, TODAY, local(9), CUTOFF, 4) is True


def test_due_today_after_cutoff_is_overdue_not_due_soon():
    assert is_due_soon(InstallmentStatus.PENDING, TODAY, local(18), CUTOFF, 4) is False


def test_zero_threshold_disables_due_soon():
    assert is_due_soon(InstallmentStatus.PENDING, TODAY, local(9), CUTOFF, 0) is False


# --- timezones ---

def test_resolve_timezone_rejects_unknown_name():
    with pytest.raises(AgencyConfigurationError) as exc_info:
        resolve_timezone("Mars/Olympus_Mons", agency_id="agency-1")
    assert exc_info.value.agency_id == "agency-1"


def test_resolve_timezone_rejects_empty_name():
    with pytest.raises(AgencyConfigurationError):
        resolve_timezone("")


def test_naive_now_is_treated_as_utc():
    aware = agency_local_now(datetime(2025, 1, 15, 7, 30, tzinfo=timezone.utc), "Australia/Brisbane")
    naive = agency_local_now(datetime(2025, 1, 15, 7, 30), "Australia/Brisbane")
    assert aware == naive
    assert naive.hour == 17


def test_daylight_saving_offset_is_applied():
    # Sydney observes DST in January (UTC+11); Brisbane never does (UTC+10)
    now = datetime(2025, 1, 15, 6, 30, tzinfo=timezone.utc)
    assert agency_local_now(now, "Australia/Sydney").hour == 17
    assert agency_local_now(now, "Australia/Brisbane").hour == 16


def test_build_agency_clock_requires_cutoff():
    with pytest.raises(AgencyConfigurationError):
        build_agency_clock("agency-1", "Australia/Brisbane", None, datetime(2025, 1, 15, tzinfo=timezone.utc))


def test_clock_for_agency_reads_agency_settings():
    agency = SimpleNamespace(id="agency-1", timezone="America/Los_Angeles", overdue_cutoff_time=time(9, 0))
    clock = clock_for_agency(agency, datetime(2025, 1, 15, 7, 30, tzinfo=timezone.utc))
    assert clock.today == date(2025, 1, 14)
    assert clock.local_time == time(23, 30)
    assert clock.overdue_cutoff == time(9, 0)


# --- evaluate_agency ---

def _clock(hour=17, minute=30):
    # Brisbane is UTC+10
    return build_agency_clock(
        "agency-1", "Australia/Brisbane", CUTOFF, datetime(2025, 1, 15, hour - 10, minute, tzinfo=timezone.utc)
    )


def test_evaluate_selects_newly_overdue_and_counts_due_soon():
    late = installment(date(2025, 1, 10))
    due_today = installment(TODAY)
    soon = installment(date(2025, 1, 17))
    later = installment(date(2025, 2, 1))

    decision = evaluate_agency([late, due_today, soon, later], _clock(), due_soon_threshold_days=4)

    assert decision.newly_overdue == [late, due_today]
    assert decision.transitioned_ids == [late.id, due_today.id]
    assert decision.due_soon_count == 1


def test_evaluate_skips_installments_of_inactive_plans():
    frozen = installment(date(2024, 12, 1), plan_status=PaymentPlanStatus.CANCELLED)
    done = installment(date(2024, 12, 2), plan_status=PaymentPlanStatus.COMPLETED)

    decision = evaluate_agency([frozen, done], _clock())

    assert decision.newly_overdue == []


def test_evaluate_twice_selects_nothing_new():
    late = installment(date(2025, 1, 10))
    first = evaluate_agency([late], _clock())
    late.status = InstallmentStatus.OVERDUE
    second = evaluate_agency([late], _clock(hour=18))

    assert first.newly_overdue == [late]
    assert second.newly_overdue == []
