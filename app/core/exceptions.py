"""Job Error Taxonomy

Transient errors are retried with backoff; permanent errors fail immediately.
"""

import asyncio

from sqlalchemy.exc import DisconnectionError, InterfaceError, OperationalError

# Lowercased substrings that mark a driver/network message as transient
TRANSIENT_PATTERNS = (
    "econnreset",
    "etimedout",
    "econnrefused",
    "connection",
    "timeout",
)


class JobError(Exception):
    """Base class for errors raised by the status job"""


class TransientJobError(JobError):
    """Network, timeout or connection failure; safe to retry"""


class PermanentJobError(JobError):
    """Validation, configuration or authorization failure; never retried"""


class InvalidPlanError(PermanentJobError):
    """Payment plan data cannot produce commission figures (e.g. zero course value)"""

    def __init__(self, message: str, plan_id=None):
        super().__init__(message)
        self.plan_id = plan_id


class AgencyConfigurationError(PermanentJobError):
    """Agency settings are malformed (unknown timezone, missing cutoff)"""

    def __init__(self, message: str, agency_id=None):
        super().__init__(message)
        self.agency_id = agency_id


class AgencyTimeoutError(TransientJobError):
    """An agency unit of work exceeded its execution budget"""


class NotificationDataError(PermanentJobError):
    """Student or plan context needed for a notification is missing or malformed"""


class JobLoggingError(JobError):
    """The jobs_log row for a run could not be written"""


def is_transient_error(error: BaseException) -> bool:
    """
    Classify an exception as transient (retryable) or permanent.

    Transient:
    - TransientJobError and subclasses
    - asyncio/builtin timeouts, ConnectionError
    - SQLAlchemy OperationalError, InterfaceError, DisconnectionError
    - anything whose message mentions a connection reset/refusal or timeout

    Everything else (including PermanentJobError) is permanent.
    """
    if isinstance(error, PermanentJobError):
        return False
    if isinstance(error, TransientJobError):
        return True
    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True
    if isinstance(error, (OperationalError, InterfaceError, DisconnectionError)):
        return True

    message = str(error).lower()
    return any(pattern in message for pattern in TRANSIENT_PATTERNS)
