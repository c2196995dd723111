"""Shared pytest fixtures: per-test SQLite store, seed helpers, job factory, HTTP client."""

import os
from datetime import date, datetime, time, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

# Settings are read at import time; the suite never talks to a real database or sends alerts
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./pleeno_test.db")
os.environ.setdefault("JOB_API_KEY", "test-job-key")
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from httpx import ASGITransport, AsyncClient

from app import models  # noqa: F401  registers every table on Base.metadata
from app.api import deps
from app.config import settings
from app.database import Base, build_engine, build_session_factory
from app.main import app
from app.models.agency import Agency, Student
from app.models.communication import Notification
from app.models.enums import InstallmentStatus, NotificationType, PaymentPlanStatus
from app.models.payments import Installment, PaymentPlan
from app.services.alert_service import AlertService
from app.services.status_job import InstallmentStatusJob

# 07:30 UTC = 17:30 in Brisbane (UTC+10, no DST): just past the default 17:00 cutoff
FIXED_NOW = datetime(2025, 1, 15, 7, 30, tzinfo=timezone.utc)


class Seeder:
    """Creates committed rows for a test."""

    def __init__(self, db):
        self.db = db

    async def _save(self, obj):
        self.db.add(obj)
        await self.db.commit()
        return obj

    async def agency(
        self,
        name: str = "Test Agency",
        timezone_name: str = "Australia/Brisbane",
        cutoff: time = time(17, 0),
        due_soon_threshold_days: int = 4,
    ) -> Agency:
        return await self._save(
            Agency(
                name=name,
                timezone=timezone_name,
                overdue_cutoff_time=cutoff,
                due_soon_threshold_days=due_soon_threshold_days,
            )
        )

    async def student(self, agency: Agency, first_name: str = "Jane", last_name: str = "Doe") -> Student:
        return await self._save(Student(agency_id=agency.id, first_name=first_name, last_name=last_name))

    async def plan(
        self,
        agency: Agency,
        student: Student = None,
        total_course_value: Decimal = Decimal("10000.00"),
        commission_rate_percent: Decimal = Decimal("15.00"),
        status: PaymentPlanStatus = PaymentPlanStatus.ACTIVE,
        gst_inclusive: bool = True,
        materials_cost: Decimal = Decimal("0"),
        admin_fees: Decimal = Decimal("0"),
        other_fees: Decimal = Decimal("0"),
    ) -> PaymentPlan:
        return await self._save(
            PaymentPlan(
                agency_id=agency.id,
                student_id=student.id if student is not None else None,
                total_course_value=total_course_value,
                materials_cost=materials_cost,
                admin_fees=admin_fees,
                other_fees=other_fees,
                commission_rate_percent=commission_rate_percent,
                gst_inclusive=gst_inclusive,
                status=status,
            )
        )

    async def installment(
        self,
        plan: PaymentPlan,
        amount: Decimal,
        student_due_date: date,
        status: InstallmentStatus = InstallmentStatus.PENDING,
        installment_number: int = 1,
        paid_amount: Decimal = None,
        generates_commission: bool = True,
    ) -> Installment:
        return await self._save(
            Installment(
                payment_plan_id=plan.id,
                installment_number=installment_number,
                amount=amount,
                student_due_date=student_due_date,
                status=status,
                paid_amount=paid_amount,
                generates_commission=generates_commission,
            )
        )

    async def overdue_notification(self, agency: Agency, installment: Installment) -> Notification:
        return await self._save(
            Notification(
                agency_id=agency.id,
                type=NotificationType.OVERDUE_PAYMENT,
                message="Payment overdue: existing",
                metadata_={"installment_id": str(installment.id)},
            )
        )


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite file per test with every table created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db) -> Seeder:
    return Seeder(db)


@pytest.fixture
def fetch(session_factory):
    """Load a row through a fresh session (the job commits through its own sessions)."""

    async def _fetch(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)

    return _fetch


@pytest.fixture
def alert_service():
    return AsyncMock(spec=AlertService)


@pytest.fixture
def make_job(session_factory, alert_service):
    """Controller with a frozen clock, no real sleeping and sequential agencies."""

    def _make(now: datetime = FIXED_NOW, **kwargs) -> InstallmentStatusJob:
        kwargs.setdefault("max_concurrency", 1)
        kwargs.setdefault("sleep", AsyncMock())
        kwargs.setdefault("alert_service", alert_service)
        return InstallmentStatusJob(session_factory, clock=lambda: now, **kwargs)

    return _make


@pytest.fixture
def api_headers() -> dict:
    return {"X-API-Key": settings.JOB_API_KEY}


@pytest.fixture
def override_db(session_factory):
    """Route request-scoped sessions to the per-test store."""

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[deps.get_db] = _get_db
    yield
    app.dependency_overrides.pop(deps.get_db, None)


@pytest.fixture
async def async_client():
    transport = ASGITransport(app=app)
    client = AsyncClient(transport=transport, base_url="http://test", timeout=30.0)
    yield client
    await client.aclose()
    app.dependency_overrides.clear()
