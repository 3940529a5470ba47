"""
FastAPI application entry point.

Run with ``uvicorn src.api.main:app``. Configuration comes from the
environment (see AppConfig.from_env); tests build their own app with
create_app(config, services).
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi

from src.api.dependencies import Services, build_services
from src.api.exception_handlers import register_exception_handlers
from src.api.middleware.auth import AuthMiddleware
from src.api.middleware.cors import add_cors_middleware
from src.api.middleware.request_id import RequestIdMiddleware
from src.api.routes import admin, coupons, health, letters
from src.shared.config import AppConfig
from src.shared.logging_config import configure_logging

logger = structlog.get_logger(__name__)

API_VERSION = "1.0.0"


BEARER_SCHEME = {
    "type": "http",
    "scheme": "bearer",
    "description": "Access token issued by the identity service.",
}


def letter_service_openapi(app: FastAPI) -> dict:
    """OpenAPI document with every operation behind the BearerAuth scheme."""
    if app.openapi_schema is None:
        schema = get_openapi(
            title=app.title,
            version=app.version,
            description=app.description,
            routes=app.routes,
        )
        schema.setdefault("components", {})["securitySchemes"] = {"BearerAuth": BEARER_SCHEME}
        # AuthMiddleware exempts /health and the docs themselves
        schema["security"] = [{"BearerAuth": []}]
        schema["info"]["x-custom-headers"] = {
            "X-Request-ID": "Correlation ID; echoed back, minted by the server when absent.",
        }
        app.openapi_schema = schema
    return app.openapi_schema


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    services: Services = app.state.services
    configure_logging(services.config.log_level, json_output=services.config.log_format == "json")
    logger.info(
        "Letter service starting",
        environment=services.config.environment,
        version=API_VERSION,
    )
    try:
        yield
    finally:
        await services.shutdown()
        logger.info("Letter service stopped")


def create_app(config: AppConfig | None = None, services: Services | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Settings; read from the environment when omitted.
        services: Pre-built components; built from ``config`` when omitted.
    """
    if services is None:
        services = build_services(config or AppConfig.from_env())

    app = FastAPI(
        title="Talk to My Lawyer API",
        description="""
AI-drafted legal letters with attorney review, approval and delivery.

## Authentication

All endpoints (except `/health`) require the access token issued by the
identity service:

```
Authorization: Bearer <access-token>
```

## Letter lifecycle

`draft` → `submitted` → `in_review` → `approved` → `completed`, with
`cancelled` reachable from the open states. Admins may override the graph.

## Error Responses

All responses share one envelope:
```json
{"success": false, "error": "Human-readable message", "code": "error_code"}
```
""",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.services = services

    app.openapi = lambda: letter_service_openapi(app)

    _configure_middleware(app, services.config)

    register_exception_handlers(app)

    app.include_router(health.router, prefix="/api/v1", tags=["health"])
    app.include_router(letters.router, prefix="/api/v1", tags=["letters"])
    app.include_router(coupons.router, prefix="/api/v1", tags=["coupons"])
    app.include_router(admin.router, prefix="/api/v1", tags=["admin"])

    return app


def _configure_middleware(app: FastAPI, config: AppConfig) -> None:
    """
    Install the middleware stack.

    add_middleware wraps from the inside out, so the last one added runs
    first: CORS answers preflights before anything else, every request then
    gets its correlation ID, and authentication runs innermost so its 401s
    still carry both.
    """
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestIdMiddleware)
    add_cors_middleware(app, allow_origin=config.cors_allow_origin)


app = create_app()
