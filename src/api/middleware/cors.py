"""
CORS middleware.

Browser clients call the API cross-origin. Headers and preflight checks come
from Starlette's CORSMiddleware; preflights it accepts are answered with 200
and an empty body. Any other OPTIONS request is answered by
PreflightMiddleware before authentication or routing.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type", "x-request-id"]
ALLOWED_METHODS = ["GET", "POST", "OPTIONS"]
EXPOSED_HEADERS = ["x-request-id"]

# Headers describing the library's "OK" body, dropped with it
_BODY_HEADERS = frozenset({"content-length", "content-type"})


class LetterCORSMiddleware(CORSMiddleware):
    """CORSMiddleware whose successful preflight responses have no body."""

    def preflight_response(self, request_headers: Headers) -> Response:
        response = super().preflight_response(request_headers)
        if response.status_code != 200:
            return response
        headers = {
            name: value
            for name, value in response.headers.items()
            if name not in _BODY_HEADERS
        }
        return Response(status_code=200, headers=headers)


class PreflightMiddleware(BaseHTTPMiddleware):
    """Answers OPTIONS on any path with 200 and an empty body."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.method == "OPTIONS":
            return Response(status_code=200)
        return await call_next(request)


def add_cors_middleware(app: FastAPI, allow_origin: str = "*") -> None:
    """
    Install both layers, CORS outermost.

    ``allow_origin`` is ``*`` or a comma-separated list of origins.
    """
    origins = [origin.strip() for origin in allow_origin.split(",") if origin.strip()]
    app.add_middleware(PreflightMiddleware)
    app.add_middleware(
        LetterCORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
        expose_headers=EXPOSED_HEADERS,
    )
