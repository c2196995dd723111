"""API Dependencies"""

from typing import Optional

from fastapi import Header, HTTPException, status

from app.core.logging import get_logger
from app.core.security import verify_api_key
from app.database import get_db  # noqa: F401  re-exported for endpoints
from app.services.alert_service import AlertService
from app.services.status_job import InstallmentStatusJob

logger = get_logger(__name__)


async def require_job_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
) -> None:
    """
    Authorize the scheduler with the pre-shared key.

    Raises:
        HTTPException: 401 if the key is missing or wrong
    """
    if not verify_api_key(x_api_key):
        logger.warning("Rejected job request with missing or invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )


def get_alert_service() -> AlertService:
    return AlertService()


def get_status_job() -> InstallmentStatusJob:
    """Controller wired to the application session factory and settings."""
    return InstallmentStatusJob(alert_service=get_alert_service())
