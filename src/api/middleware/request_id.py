"""
Request correlation IDs.

A client-supplied X-Request-ID is kept; otherwise one is minted. The ID is
stored on ``request.state``, bound into the structlog context for every log
line emitted while the request runs, and echoed on the response.
"""

import uuid
from contextvars import ContextVar

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

request_id_context: ContextVar[str | None] = ContextVar("request_id", default=None)


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


def get_request_id() -> str | None:
    """The ID of the request being handled, if any."""
    return request_id_context.get()


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request and its log lines with a correlation ID."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        request.state.request_id = request_id
        context_token = request_id_context.set(request_id)

        try:
            with structlog.contextvars.bound_contextvars(request_id=request_id):
                response = await call_next(request)
                logger.debug(
                    "Request handled",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                )
        finally:
            request_id_context.reset(context_token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
