"""Translation of errors into the response envelope.

Service code raises typed ``AuthServiceError`` subclasses; this module is the
only place where they become HTTP responses.
"""

from typing import Any, Dict, Optional
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tokenauth.exceptions import AuthServiceError, UnauthorizedError
from tokenauth.models.response import ApiResponse

logger = structlog.get_logger(__name__)

_REQUEST_LOCATIONS = {"body", "query", "path", "header", "cookie"}


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


def envelope_response(
    request: Request,
    status_code: int,
    message: str,
    error: str,
    data: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Build an error response in the standard envelope."""
    correlation_id = _correlation_id(request)
    body = ApiResponse.failure(
        message=message,
        status_code=status_code,
        error=error,
        data=data,
        correlation_id=correlation_id,
    )
    response_headers = {"X-Correlation-Id": correlation_id}
    if headers:
        response_headers.update(headers)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True, exclude_none=True),
        headers=response_headers,
    )


def validation_errors_by_field(exc: RequestValidationError) -> Dict[str, str]:
    """Map each invalid field to its first error message.

    Only field paths and messages are returned. Submitted values are never
    echoed back, since they may include passwords.
    """
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _REQUEST_LOCATIONS:
            loc = loc[1:]
        field = ".".join(loc) or "body"
        errors.setdefault(field, error.get("msg", "Invalid value"))
    return errors


async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "request_failed",
        path=request.url.path,
        status_code=exc.status_code,
        error_code=exc.error_code,
        error_message=exc.message,
        **exc.detail,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return envelope_response(
        request,
        exc.status_code,
        exc.message,
        exc.error_code,
        data=exc.detail or None,
        headers=headers,
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with a field-to-message map (400)."""
    errors = validation_errors_by_field(exc)
    logger.warning("validation_error", path=request.url.path, fields=sorted(errors))
    return envelope_response(
        request,
        status.HTTP_400_BAD_REQUEST,
        "Validation failed",
        "validation_error",
        data=errors,
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return envelope_response(
        request,
        exc.status_code,
        message,
        "http_error",
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_exception", path=request.url.path, error_type=type(exc).__name__)
    return envelope_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        "internal_error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthServiceError, auth_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
