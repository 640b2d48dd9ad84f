"""
Root of the DuoSync error hierarchy.

Anything the service raises deliberately is a ProjectError carrying a stable
``code`` for clients and the HTTP status the API answers with. The wrapped
``cause`` is kept for logs only and never reaches a response body.
"""
from __future__ import annotations

import traceback
from typing import Any, Optional, Type


class ProjectError(Exception):
    default_code: str = "ERROR"
    default_http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        http_status: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = self.default_http_status if http_status is None else http_status
        self.details: dict[str, Any] = dict(details or {})
        self.cause = cause

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, code={self.code!r}, http_status={self.http_status})"

    def to_response(self) -> dict[str, Any]:
        """Body returned to API clients."""
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return {"error": error}

    def to_dict(self, *, include_cause: bool = True) -> dict[str, Any]:
        """Flat form for structured logs, optionally with the wrapped traceback."""
        payload = dict(self.to_response()["error"], http_status=self.http_status)
        if include_cause and self.cause is not None:
            payload["cause"] = str(self.cause)
            payload["cause_traceback"] = traceback.format_exception(
                type(self.cause), self.cause, self.cause.__traceback__
            )
        return payload


def exception_factory(
    name: str,
    *,
    code: Optional[str] = None,
    http_status: int = 500,
    base: Type[ProjectError] = ProjectError,
) -> Type[ProjectError]:
    """
    Declare a ProjectError subclass at runtime.

        QuotaError = exception_factory("QuotaError", code="QUOTA_EXCEEDED", http_status=429)
    """
    attrs = {
        "default_code": code or name.upper().replace(" ", "_"),
        "default_http_status": http_status,
    }
    return type(name, (base,), attrs)
