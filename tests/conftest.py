"""
Pytest configuration and shared fixtures.

The store is fakeredis, the identity service is a token-to-profile map and
the Claude client is a mock, so the whole application runs in-process.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import fakeredis.aioredis
import pytest
from httpx import ASGITransport, AsyncClient

from src.api.dependencies import Services, build_services
from src.api.main import create_app
from src.shared.config import AppConfig
from src.shared.errors import AuthenticationError
from src.shared.models import Letter, LetterStatus, UserProfile, UserRole
from src.shared.redis_client import RedisClient
from src.workflow.email_sender import SimulatedEmailSender

SAMPLE_DRAFT = """Dear Mr. Smith,

Re: Unpaid invoice #1042

We write on behalf of our client, Jane Doe, regarding the outstanding balance
of $2,500. Please remit payment within 14 days.

Sincerely,
Jane Doe"""


@pytest.fixture
async def fake_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
    """Provide a fake Redis client for testing."""
    redis = fakeredis.aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.aclose()


@pytest.fixture
async def redis_client(fake_redis: fakeredis.aioredis.FakeRedis) -> RedisClient:
    """Create a RedisClient with fake Redis backend."""
    client = RedisClient()
    client._client = fake_redis
    return client


def _profile(user_id: str, role: UserRole, minutes_ago: int) -> UserProfile:
    return UserProfile(
        id=user_id,
        email=f"{user_id}@example.com",
        role=role,
        created_at=datetime.now(UTC) - timedelta(minutes=minutes_ago),
    )


@pytest.fixture
def owner() -> UserProfile:
    return _profile("user-owner", UserRole.USER, 40)


@pytest.fixture
def other_user() -> UserProfile:
    return _profile("user-other", UserRole.USER, 30)


@pytest.fixture
def employee() -> UserProfile:
    return _profile("user-employee", UserRole.EMPLOYEE, 20)


@pytest.fixture
def admin() -> UserProfile:
    return _profile("user-admin", UserRole.ADMIN, 10)


@pytest.fixture
async def profiles(
    redis_client: RedisClient,
    owner: UserProfile,
    other_user: UserProfile,
    employee: UserProfile,
    admin: UserProfile,
) -> dict[str, UserProfile]:
    """Store the four standard profiles and return them keyed by role name."""
    stored = {"owner": owner, "other": other_user, "employee": employee, "admin": admin}
    for profile in stored.values():
        await redis_client.store_profile(profile)
    return stored


@pytest.fixture
def letter_factory(
    redis_client: RedisClient,
) -> Callable[..., Awaitable[Letter]]:
    """Store a letter directly in a given status, bypassing the engine."""
    counter = 0

    async def make(
        owner_id: str,
        status: LetterStatus = LetterStatus.DRAFT,
        **fields: Any,
    ) -> Letter:
        nonlocal counter
        counter += 1
        created = datetime.now(UTC) - timedelta(minutes=100 - counter)
        letter = Letter(
            id=f"ltr_TEST{counter:04d}",
            user_id=owner_id,
            title=fields.pop("title", f"Letter {counter}"),
            status=status,
            created_at=created,
            updated_at=created,
            **fields,
        )
        await redis_client.store_letter(letter)
        return letter

    return make


class FakeIdentityGateway:
    """Maps bearer tokens to profiles."""

    def __init__(self, tokens: dict[str, UserProfile]) -> None:
        self.tokens = tokens

    async def authenticate(self, token: str) -> UserProfile:
        profile = self.tokens.get(token)
        if profile is None:
            raise AuthenticationError("Invalid or expired token")
        return profile

    async def close(self) -> None:
        pass


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def make_claude_message(text: str = SAMPLE_DRAFT) -> SimpleNamespace:
    """Build an object shaped like an Anthropic Messages API response."""
    return SimpleNamespace(
        content=[SimpleNamespace(type="text", text=text)],
        usage=SimpleNamespace(input_tokens=350, output_tokens=420),
    )


@pytest.fixture
def mock_anthropic() -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=make_claude_message())
    return client


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        anthropic_api_key="sk-ant-test",
        supabase_url="https://auth.example.test",
        supabase_anon_key="anon-key",
        environment="test",
    )


@pytest.fixture
def email_sender() -> SimulatedEmailSender:
    return SimulatedEmailSender(from_email="noreply@example.com", from_name="Letters")


@pytest.fixture
def services(
    app_config: AppConfig,
    redis_client: RedisClient,
    profiles: dict[str, UserProfile],
    email_sender: SimulatedEmailSender,
    mock_anthropic: MagicMock,
) -> Services:
    gateway = FakeIdentityGateway(
        {
            "owner-token": profiles["owner"],
            "other-token": profiles["other"],
            "employee-token": profiles["employee"],
            "admin-token": profiles["admin"],
        }
    )
    return build_services(
        app_config,
        redis=redis_client,
        identity=gateway,
        email_sender=email_sender,
        anthropic_client=mock_anthropic,
    )


@pytest.fixture
async def client(app_config: AppConfig, services: Services) -> AsyncGenerator[AsyncClient, None]:
    """Async client for an app wired to the fake services."""
    app = create_app(app_config, services)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    await services.engine.drain()
