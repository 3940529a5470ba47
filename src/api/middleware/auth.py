"""
Bearer authentication middleware.

Every route except health and the API docs needs
``Authorization: Bearer <token>``. The token is resolved to the caller's
profile by the identity gateway on ``app.state.services``; the profile is
left on ``request.state.caller`` for the route dependencies and the
caller's id is bound into the log context.
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from src.api.schemas.common import error_envelope
from src.shared.errors import AuthenticationError, LetterServiceError
from src.shared.models import UserProfile

logger = structlog.get_logger(__name__)

PUBLIC_PATHS = frozenset(
    {
        "/api/v1/health",
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
    }
)

MALFORMED_HEADER_MESSAGE = "Invalid Authorization header format. Expected: Bearer <token>"


def is_public(path: str) -> bool:
    """Public paths and anything below them (e.g. /docs/oauth2-redirect)."""
    return path in PUBLIC_PATHS or any(path.startswith(f"{public}/") for public in PUBLIC_PATHS)


def parse_bearer(header: str) -> str | None:
    """Return the token from a ``Bearer <token>`` header, or None if malformed."""
    scheme, _, token = header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        return None
    return token


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Rejects unauthenticated requests before they reach a route.

    401 for a missing, malformed or rejected token; a token whose user has no
    profile is a 403. Identity-service outages surface as a 500 with a
    generic message.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS" or is_public(request.url.path):
            return await call_next(request)

        try:
            caller = await self._authenticate(request)
        except LetterServiceError as exc:
            logger.warning(
                "Authentication failed",
                path=request.url.path,
                method=request.method,
                code=exc.error_code,
                reason=exc.message,
            )
            message = exc.message if exc.expose_message else "Authentication service unavailable"
            return JSONResponse(status_code=exc.status_code, content=error_envelope(exc.error_code, message))

        request.state.caller = caller
        with structlog.contextvars.bound_contextvars(user_id=caller.id):
            return await call_next(request)

    async def _authenticate(self, request: Request) -> UserProfile:
        header = request.headers.get("Authorization")
        if not header:
            raise AuthenticationError("Missing Authorization header")

        token = parse_bearer(header)
        if token is None:
            raise AuthenticationError(MALFORMED_HEADER_MESSAGE)

        return await request.app.state.services.identity.authenticate(token)
