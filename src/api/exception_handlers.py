"""
Global exception handlers.

Every failure leaves the API in the same envelope as LetterServiceError
renders it. Domain errors keep their own status and code. Upstream,
configuration and unexpected failures are logged with full detail and
answered with a generic message; debug details (exception type and
traceback) are attached only outside production.
"""

import traceback
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.middleware.request_id import REQUEST_ID_HEADER, get_request_id
from src.api.schemas.common import error_envelope
from src.shared.errors import LetterServiceError

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An internal error occurred. Please try again later."

# Framework-raised statuses (unknown route, wrong method, ...) -> (code, default message)
HTTP_STATUS_CODES: dict[int, tuple[str, str]] = {
    400: ("validation_error", "Bad request"),
    401: ("unauthorized", "Unauthorized"),
    403: ("forbidden", "Forbidden"),
    404: ("not_found", "Not found"),
    405: ("method_not_allowed", "Method not allowed"),
    500: ("internal_error", "Internal server error"),
}


def _respond(request: Request, status_code: int, content: dict[str, Any]) -> JSONResponse:
    headers = {}
    # request.state survives past the middleware that set the context variable
    request_id = getattr(request.state, "request_id", None) or get_request_id()
    if request_id:
        headers[REQUEST_ID_HEADER] = request_id
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _debug_details(request: Request, exc: BaseException) -> dict[str, Any] | None:
    services = getattr(request.app.state, "services", None)
    if services is not None and services.config.is_production:
        return None
    return {
        "exception_type": type(exc).__name__,
        "exception_message": str(exc),
        "traceback": traceback.format_exception(exc),
    }


async def handle_letter_service_error(request: Request, exc: LetterServiceError) -> JSONResponse:
    if exc.expose_message:
        logger.info(
            "Request rejected",
            path=request.url.path,
            status_code=exc.status_code,
            code=exc.error_code,
            message=exc.message,
        )
        return _respond(request, exc.status_code, error_envelope(exc.error_code, exc.message, exc.details))

    logger.error(
        "Request failed",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.error_code,
        message=exc.message,
        details=exc.details,
        exc_info=exc.__cause__ or exc,
    )
    return _respond(request, exc.status_code, error_envelope(exc.error_code, GENERIC_ERROR_MESSAGE))


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body, query and path schema failures become 400 with per-field details."""
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.info("Request body rejected", path=request.url.path, errors=errors)
    return _respond(
        request,
        400,
        error_envelope("validation_error", "Request validation failed", {"errors": errors}),
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, default_message = HTTP_STATUS_CODES.get(
        exc.status_code, (f"error_{exc.status_code}", f"Error {exc.status_code}")
    )
    log = logger.error if exc.status_code >= 500 else logger.warning
    log("HTTP error", path=request.url.path, status_code=exc.status_code, detail=exc.detail)
    return _respond(request, exc.status_code, error_envelope(code, str(exc.detail or default_message)))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=exc,
    )
    return _respond(
        request,
        500,
        error_envelope("internal_error", GENERIC_ERROR_MESSAGE, _debug_details(request, exc)),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LetterServiceError, handle_letter_service_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
