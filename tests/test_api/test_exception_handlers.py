"""
Tests for the global exception handlers.
"""

import dataclasses

import pytest
from httpx import ASGITransport, AsyncClient

from src.api.exception_handlers import GENERIC_ERROR_MESSAGE
from src.api.main import create_app
from src.shared.config import AppConfig
from src.shared.errors import UpstreamError
from tests.conftest import auth_header


def _app_with_failing_routes(services):
    app = create_app(services.config, services)

    async def boom():
        raise RuntimeError("database exploded")

    async def provider_down():
        raise UpstreamError("MailerSend rejected key sk-secret", details={"status": 401})

    app.add_api_route("/api/v1/boom", boom)
    app.add_api_route("/api/v1/provider-down", provider_down)
    return app


@pytest.fixture
async def failing_client(services):
    app = _app_with_failing_routes(services)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


class TestUnhandledExceptions:
    async def test_generic_message_with_debug_details(self, failing_client) -> None:
        response = await failing_client.get("/api/v1/boom", headers=auth_header("admin-token"))

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "internal_error"
        assert body["error"] == GENERIC_ERROR_MESSAGE
        assert body["details"]["exception_type"] == "RuntimeError"
        assert "X-Request-ID" in response.headers

    async def test_production_hides_details(self, services) -> None:
        prod = dataclasses.replace(services, config=AppConfig(environment="production"))
        app = _app_with_failing_routes(prod)
        transport = ASGITransport(app=app, raise_app_exceptions=False)

        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/api/v1/boom", headers=auth_header("admin-token"))

        assert response.status_code == 500
        body = response.json()
        assert "details" not in body
        assert "database exploded" not in response.text


class TestDomainErrors:
    async def test_upstream_message_not_exposed(self, failing_client) -> None:
        response = await failing_client.get("/api/v1/provider-down", headers=auth_header("admin-token"))

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": GENERIC_ERROR_MESSAGE,
            "code": "upstream_error",
        }


class TestHTTPExceptions:
    async def test_unknown_route(self, client) -> None:
        response = await client.get("/api/v1/nothing-here", headers=auth_header("owner-token"))

        assert response.status_code == 404
        assert response.json()["success"] is False
        assert response.json()["code"] == "not_found"

    async def test_wrong_method(self, client) -> None:
        response = await client.get("/api/v1/generate-draft", headers=auth_header("owner-token"))

        assert response.status_code == 405
        assert response.json()["code"] == "method_not_allowed"

    async def test_malformed_json(self, client) -> None:
        response = await client.post(
            "/api/v1/update-letter-status",
            content=b"{not json",
            headers={**auth_header("owner-token"), "Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"
