"""
Status Transition Engine

Decides which installments move pending -> overdue for one agency, evaluated in
the agency's local time. Pure: the caller supplies the run's `now` instant and
the agency settings; nothing is read from ambient state.

    overdue  iff  status == pending AND (
        student_due_date < today_local
        OR (student_due_date == today_local AND now_local_time > overdue_cutoff_time)
    )

The offset applied is the one the IANA database gives for `now`; no
historical DST correction is attempted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Iterable, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.core.exceptions import AgencyConfigurationError
from app.models.enums import InstallmentStatus, PaymentPlanStatus


@dataclass(frozen=True)
class AgencyClock:
    """An agency's local view of the run's single `now` instant."""

    agency_id: Any
    timezone_name: str
    overdue_cutoff: time
    local_now: datetime

    @property
    def today(self) -> date:
        return self.local_now.date()

    @property
    def local_time(self) -> time:
        return self.local_now.time().replace(tzinfo=None)


@dataclass
class TransitionDecision:
    """Outcome of evaluating one agency's installments."""

    agency_id: Any
    local_now: datetime
    newly_overdue: List[Any] = field(default_factory=list)
    due_soon_count: int = 0

    @property
    def transitioned_ids(self) -> List[Any]:
        return [installment.id for installment in self.newly_overdue]


def resolve_timezone(timezone_name: Optional[str], agency_id=None) -> ZoneInfo:
    """Look up an IANA timezone; unknown names are a configuration error."""
    if not timezone_name:
        raise AgencyConfigurationError("Agency has no timezone configured", agency_id=agency_id)
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise AgencyConfigurationError(
            f"Unknown timezone '{timezone_name}'", agency_id=agency_id
        ) from exc


def agency_local_now(now_utc: datetime, timezone_name: str, agency_id=None) -> datetime:
    """Convert a UTC instant (naive values are taken as UTC) to agency-local time."""
    if now_utc.tzinfo is None:
        now_utc = now_utc.replace(tzinfo=timezone.utc)
    return now_utc.astimezone(resolve_timezone(timezone_name, agency_id))


def build_agency_clock(agency_id, timezone_name: str, overdue_cutoff: Optional[time], now_utc: datetime) -> AgencyClock:
    if overdue_cutoff is None:
        raise AgencyConfigurationError("Agency has no overdue cutoff time configured", agency_id=agency_id)
    return AgencyClock(
        agency_id=agency_id,
        timezone_name=timezone_name,
        overdue_cutoff=overdue_cutoff.replace(tzinfo=None),
        local_now=agency_local_now(now_utc, timezone_name, agency_id),
    )


def clock_for_agency(agency, now_utc: datetime) -> AgencyClock:
    """AgencyClock from an Agency row (or anything with the same attributes)."""
    return build_agency_clock(agency.id, agency.timezone, agency.overdue_cutoff_time, now_utc)


def is_overdue(status, student_due_date: date, local_now: datetime, overdue_cutoff: time) -> bool:
    """The pending -> overdue rule for a single installment."""
    if status != InstallmentStatus.PENDING:
        return False
    today = local_now.date()
    if student_due_date < today:
        return True
    if student_due_date == today:
        return local_now.time().replace(tzinfo=None) > overdue_cutoff.replace(tzinfo=None)
    return False


def is_due_soon(
    status,
    student_due_date: date,
    local_now: datetime,
    overdue_cutoff: time,
    threshold_days: int,
) -> bool:
    """Pending and due within threshold_days local days, but not yet overdue."""
    if status != InstallmentStatus.PENDING or threshold_days is None or threshold_days < 1:
        return False
    if is_overdue(status, student_due_date, local_now, overdue_cutoff):
        return False
    today = local_now.date()
    return today <= student_due_date < today + timedelta(days=threshold_days)


def _plan_status(installment) -> Optional[PaymentPlanStatus]:
    plan = getattr(installment, "payment_plan", None)
    return getattr(plan, "status", None)


def evaluate_agency(
    installments: Iterable,
    clock: AgencyClock,
    due_soon_threshold_days: int = 0,
    plan_status_of: Callable[[Any], Any] = _plan_status,
) -> TransitionDecision:
    """
    Evaluate an agency's installments against its clock.

    Installments under non-active plans are frozen and skipped regardless of
    date. Already-overdue installments fail the pending precondition, so a
    second evaluation on the same local day selects nothing new.
    """
    decision = TransitionDecision(agency_id=clock.agency_id, local_now=clock.local_now)

    for installment in installments:
        if plan_status_of(installment) != PaymentPlanStatus.ACTIVE:
            continue
        if is_overdue(installment.status, installment.student_due_date, clock.local_now, clock.overdue_cutoff):
            decision.newly_overdue.append(installment)
        elif is_due_soon(
            installment.status,
            installment.student_due_date,
            clock.local_now,
            clock.overdue_cutoff,
            due_soon_threshold_days,
        ):
            decision.due_soon_count += 1

    return decision
