"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Domain errors carry a
machine-readable error_code which decides the HTTP status; every error
body has the shape {"error", "message", "details"?}.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from automation.core.config import get_settings
from automation.domain.exceptions import AutomationException

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR_CODE: dict[str, int] = {
    "VALIDATION_ERROR": 400,
    "RESOURCE_NOT_FOUND": 404,
    "WORKFLOW_STATE_CONFLICT": 409,
    "ALREADY_ENROLLED": 409,
    "SERVICE_UNAVAILABLE": 503,
}


def status_for(exc: AutomationException) -> int:
    """HTTP status for a domain exception (unmapped codes are client errors)."""
    return _STATUS_BY_ERROR_CODE.get(exc.error_code, 400)


def _error_body(error: str, message: Any, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error, "message": message}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


def _automation_exception_handler(
    request: Request, exc: AutomationException
) -> JSONResponse:
    status = status_for(exc)
    log = logger.warning if status >= 500 else logger.info
    log("%s %s -> %s %s", request.method, request.url.path, status, exc.error_code)
    return JSONResponse(
        status_code=status,
        content=_error_body(exc.error_code, exc.message, exc.details),
    )


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body/query failed schema validation: 422 with pydantic's error list."""
    return JSONResponse(
        status_code=422,
        content=_error_body("VALIDATION_ERROR", "Request validation failed", exc.errors()),
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body("HTTP_ERROR", exc.detail),
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; the exception text is exposed only when debug is on."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(status_code=500, content=_error_body("INTERNAL_ERROR", message))


def register_exception_handlers(app: FastAPI) -> None:
    """Register domain, request-validation, HTTP and catch-all handlers."""
    app.add_exception_handler(AutomationException, _automation_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
