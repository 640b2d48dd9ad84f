"""Render ProjectError subclasses as {"error": {"code", "message", "details"?}} responses."""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from duosync.core.exceptions import ProjectError

logger = logging.getLogger(__name__)


async def project_error_handler(request: Request, exc: ProjectError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error(
            "%s %s failed: %s", request.method, request.url.path, exc.message,
            extra={"error": exc.to_dict(include_cause=False), "cause": str(exc.cause) if exc.cause else None},
        )
    else:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.code)
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProjectError, project_error_handler)
