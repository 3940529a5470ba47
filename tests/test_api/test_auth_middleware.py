"""
Tests for AuthMiddleware.
"""

from unittest.mock import AsyncMock

import pytest

from src.shared.errors import AuthorizationError, UpstreamError
from tests.conftest import auth_header


class TestAuthMiddleware:
    async def test_missing_header(self, client) -> None:
        response = await client.get("/api/v1/letters/requiring-action")

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Missing Authorization header",
            "code": "unauthorized",
        }

    @pytest.mark.parametrize("header", ["Basic abc123", "Bearer", "token-only"])
    async def test_malformed_header(self, client, header) -> None:
        response = await client.get("/api/v1/get-all-users", headers={"Authorization": header})

        assert response.status_code == 401
        assert "Bearer <token>" in response.json()["error"]

    async def test_rejected_token(self, client) -> None:
        response = await client.get("/api/v1/get-all-users", headers=auth_header("stolen-token"))

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    async def test_missing_profile_is_forbidden(self, client, services) -> None:
        services.identity.authenticate = AsyncMock(side_effect=AuthorizationError("Profile not found"))

        response = await client.get("/api/v1/get-all-users", headers=auth_header("admin-token"))

        assert response.status_code == 403
        assert response.json()["error"] == "Profile not found"

    async def test_identity_outage_hides_details(self, client, services) -> None:
        services.identity.authenticate = AsyncMock(
            side_effect=UpstreamError("Identity service error", details={"status": 502})
        )

        response = await client.get("/api/v1/get-all-users", headers=auth_header("admin-token"))

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Authentication service unavailable",
            "code": "upstream_error",
        }

    async def test_scheme_is_case_insensitive(self, client) -> None:
        response = await client.get("/api/v1/get-all-users", headers={"Authorization": "bearer admin-token"})

        assert response.status_code == 200

    @pytest.mark.parametrize("path", ["/api/v1/health", "/openapi.json", "/docs"])
    async def test_exempt_paths(self, client, path) -> None:
        response = await client.get(path)

        assert response.status_code == 200
