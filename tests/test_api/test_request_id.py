"""
Tests for request ID tracking.
"""

from tests.conftest import auth_header


class TestRequestId:
    async def test_generated_when_absent(self, client) -> None:
        response = await client.get("/api/v1/health")

        assert response.headers["X-Request-ID"].startswith("req_")

    async def test_client_id_preserved(self, client) -> None:
        response = await client.get("/api/v1/health", headers={"X-Request-ID": "client-trace-42"})

        assert response.headers["X-Request-ID"] == "client-trace-42"

    async def test_present_on_domain_errors(self, client) -> None:
        response = await client.get(
            "/api/v1/letters/ltr_MISSING",
            headers={**auth_header("owner-token"), "X-Request-ID": "trace-404"},
        )

        assert response.status_code == 404
        assert response.headers["X-Request-ID"] == "trace-404"

    async def test_unique_per_request(self, client) -> None:
        first = await client.get("/api/v1/health")
        second = await client.get("/api/v1/health")

        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]
