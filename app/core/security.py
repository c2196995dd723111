"""Security Utilities for the job trigger"""

import secrets
from typing import Optional

from app.config import settings


def verify_api_key(provided_key: Optional[str], expected_key: Optional[str] = None) -> bool:
    """
    Verify a pre-shared API key in constant time.

    Args:
        provided_key: Key received in the X-API-Key header (may be None)
        expected_key: Key to compare against (defaults to settings.JOB_API_KEY)

    Returns:
        True if the key matches, False if missing, empty or mismatched
    """
    expected = settings.JOB_API_KEY if expected_key is None else expected_key
    if not provided_key or not expected:
        return False
    return secrets.compare_digest(provided_key.encode("utf-8"), expected.encode("utf-8"))
