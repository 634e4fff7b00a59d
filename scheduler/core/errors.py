# scheduler/core/errors.py
"""
Error taxonomy for the Appointment Scheduler.

Load-time failures (RemoteUnavailable, NotFound) put the whole view into an
error state; write-time failures and form problems are advisory.
"""

from typing import List, Optional


class SchedulerError(Exception):
    """Base class for all scheduler errors"""

    pass


class RemoteUnavailable(SchedulerError):
    """Document service is unreachable or not configured"""

    pass


class NotFound(SchedulerError):
    """Referenced collection or document does not exist"""

    pass


class ValidationError(SchedulerError):
    """Required appointment fields are missing or invalid"""

    def __init__(self, errors: Optional[List[str]] = None, message: str = ""):
        self.errors = list(errors or [])
        super().__init__(message or "; ".join(self.errors) or "Validation failed")


class InvalidDate(SchedulerError):
    """A date value could not be parsed"""

    pass
