"""Concrete DuoSync errors, grouped by the HTTP status they map to."""
from __future__ import annotations

from duosync.core.exceptions.base import ProjectError


# 4xx: the caller can fix the request

class ValidationError(ProjectError):
    """Input was rejected; ``details["field"]`` names the culprit when known."""

    default_code = "VALIDATION_ERROR"
    default_http_status = 400


class RecurrenceRuleError(ValidationError):
    """A recurrence rule is malformed or contradicts itself."""

    default_code = "RECURRENCE_INVALID"


class NotFoundError(ProjectError):
    default_code = "NOT_FOUND"
    default_http_status = 404


class ConflictError(ProjectError):
    """The write collides with existing state, e.g. a second exception for one date."""

    default_code = "CONFLICT"
    default_http_status = 409


# 5xx: the request was fine, something downstream was not

class ExternalServiceError(ProjectError):
    default_code = "UPSTREAM_FAILURE"
    default_http_status = 502


class DataFetchError(ExternalServiceError):
    """Intervals could not be loaded, so no timeline is produced."""

    default_code = "DATA_FETCH_ERROR"


class TimelineTimeoutError(ProjectError):
    default_code = "TIMELINE_TIMEOUT"
    default_http_status = 504
