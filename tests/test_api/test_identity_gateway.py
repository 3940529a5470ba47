"""
Tests for IdentityGateway against a mocked identity service.
"""

from unittest.mock import AsyncMock

import httpx
import pytest
import respx
from redis.exceptions import ConnectionError as RedisConnectionError

from src.api.auth.identity_gateway import IdentityGateway
from src.shared.config import AppConfig
from src.shared.errors import AuthenticationError, AuthorizationError, ConfigurationError, UpstreamError

USER_URL = "https://auth.example.test/auth/v1/user"


@pytest.fixture
async def gateway(app_config, redis_client):
    gateway = IdentityGateway(app_config, redis_client)
    yield gateway
    await gateway.close()


class TestAuthenticate:
    @respx.mock
    async def test_valid_token_returns_profile(self, gateway, profiles) -> None:
        route = respx.get(USER_URL).mock(
            return_value=httpx.Response(200, json={"id": "user-employee", "email": "user-employee@example.com"})
        )

        profile = await gateway.authenticate("good-token")

        assert profile.id == "user-employee"
        assert profile.is_staff
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer good-token"
        assert request.headers["apikey"] == "anon-key"

    @respx.mock
    @pytest.mark.parametrize("status", [401, 403])
    async def test_rejected_token(self, gateway, status) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(status, json={"msg": "invalid JWT"}))

        with pytest.raises(AuthenticationError):
            await gateway.authenticate("bad-token")

    @respx.mock
    async def test_response_without_user_id(self, gateway) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(200, json={}))

        with pytest.raises(AuthenticationError):
            await gateway.authenticate("odd-token")

    @respx.mock
    async def test_user_without_profile(self, gateway, profiles) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(200, json={"id": "user-new"}))

        with pytest.raises(AuthorizationError):
            await gateway.authenticate("new-user-token")

    @respx.mock
    async def test_identity_service_error(self, gateway) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(UpstreamError) as exc_info:
            await gateway.authenticate("token")

        assert exc_info.value.details == {"status": 503}

    @respx.mock
    async def test_identity_service_unreachable(self, gateway) -> None:
        respx.get(USER_URL).mock(side_effect=httpx.ConnectError("connection refused"))

        with pytest.raises(UpstreamError):
            await gateway.authenticate("token")

    @respx.mock
    async def test_non_json_user_response(self, gateway) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(200, text="<html>maintenance</html>"))

        with pytest.raises(UpstreamError):
            await gateway.authenticate("token")

    @respx.mock
    async def test_non_object_user_response(self, gateway) -> None:
        respx.get(USER_URL).mock(return_value=httpx.Response(200, json=["user-owner"]))

        with pytest.raises(AuthenticationError):
            await gateway.authenticate("token")

    @respx.mock
    async def test_profile_store_down(self, gateway, redis_client) -> None:
        """
        Given: A valid token but an unreachable profile store
        When: The caller is authenticated
        Then: UpstreamError, so the request gets an enveloped 500
        """
        respx.get(USER_URL).mock(return_value=httpx.Response(200, json={"id": "user-owner"}))
        redis_client.get_profile = AsyncMock(side_effect=RedisConnectionError("connection refused"))

        with pytest.raises(UpstreamError):
            await gateway.authenticate("token")

    async def test_unconfigured(self, redis_client) -> None:
        gateway = IdentityGateway(AppConfig(), redis_client)

        with pytest.raises(ConfigurationError):
            await gateway.authenticate("token")
