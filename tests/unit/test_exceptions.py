"""Unit tests for transient/permanent error classification."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    AgencyConfigurationError,
    AgencyTimeoutError,
    InvalidPlanError,
    NotificationDataError,
    TransientJobError,
    is_transient_error,
)


@pytest.mark.parametrize(
    "error",
    [
        TransientJobError("blip"),
        AgencyTimeoutError("agency took too long"),
        asyncio.TimeoutError(),
        TimeoutError("read timed out"),
        ConnectionResetError("reset by peer"),
        OperationalError("SELECT 1", {}, Exception("server closed the connection")),
        RuntimeError("ECONNREFUSED 127.0.0.1:5432"),
        RuntimeError("Connection terminated unexpectedly"),
        RuntimeError("statement timeout"),
    ],
)
def test_transient_errors(error):
    assert is_transient_error(error) is True


@pytest.mark.parametrize(
    "error",
    [
        InvalidPlanError("zero course value"),
        AgencyConfigurationError("unknown timezone"),
        NotificationDataError("missing student"),
        ValueError("bad input"),
        KeyError("student_id"),
        # permanent classification wins over message patterns
        InvalidPlanError("connection to plan lost"),
    ],
)
def test_permanent_errors(error):
    assert is_transient_error(error) is False


def test_invalid_plan_error_carries_plan_id():
    error = InvalidPlanError("zero course value", plan_id="plan-7")
    assert error.plan_id == "plan-7"
    assert str(error) == "zero course value"
