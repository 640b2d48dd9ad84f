"""
Errors raised on purpose by DuoSync.

    from duosync.core.exceptions import NotFoundError, ValidationError

    raise ValidationError("end_ts must be after start_ts", details={"field": "end_ts"})

The API layer turns any ProjectError into a JSON body with its ``code`` and
answers with its ``http_status``.
"""
from duosync.core.exceptions.base import ProjectError, exception_factory
from duosync.core.exceptions.errors import (
    ConflictError,
    DataFetchError,
    ExternalServiceError,
    NotFoundError,
    RecurrenceRuleError,
    TimelineTimeoutError,
    ValidationError,
)

__all__ = [
    "ProjectError",
    "exception_factory",
    "ValidationError",
    "RecurrenceRuleError",
    "NotFoundError",
    "ConflictError",
    "ExternalServiceError",
    "DataFetchError",
    "TimelineTimeoutError",
]
