"""
Bearer token verification against the hosted identity service.

The token is checked with the Supabase auth API (``GET /auth/v1/user``); the
caller's role and counters come from their profile in the store. A valid
token without a profile is an authorization failure, not an authentication
one.
"""

import httpx
import structlog
from redis.exceptions import RedisError

from src.shared.config import AppConfig
from src.shared.errors import AuthenticationError, AuthorizationError, ConfigurationError, UpstreamError
from src.shared.models import UserProfile
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class IdentityGateway:
    """
    Resolves a bearer token to the caller's UserProfile.

    Holds one pooled httpx client for the lifetime of the application.
    """

    def __init__(
        self,
        config: AppConfig,
        redis: RedisClient,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._auth_url = (config.supabase_url or "").rstrip("/")
        self._anon_key = config.supabase_anon_key
        self._timeout = config.http_timeout
        self._redis = redis
        self._http = http_client

    def _get_http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def authenticate(self, token: str) -> UserProfile:
        """
        Verify ``token`` and load the caller's profile.

        Raises:
            AuthenticationError: The identity service rejected the token.
            AuthorizationError: The user has no profile.
            ConfigurationError: The identity service URL is not configured.
            UpstreamError: The identity service could not be reached or
                answered garbage, or the profile store is down.
        """
        if not self._auth_url:
            raise ConfigurationError("SUPABASE_URL is not configured")

        headers = {"Authorization": f"Bearer {token}"}
        if self._anon_key:
            headers["apikey"] = self._anon_key

        try:
            resp = await self._get_http().get(f"{self._auth_url}/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error("Identity service unreachable", error=str(e))
            raise UpstreamError("Identity service unavailable") from e

        if resp.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        if resp.status_code != 200:
            logger.error("Identity service error", status=resp.status_code)
            raise UpstreamError("Identity service error", details={"status": resp.status_code})

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error("Identity service returned malformed user", error=str(e))
            raise UpstreamError("Identity service returned an invalid response") from e

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthenticationError("Invalid or expired token")

        try:
            profile = await self._redis.get_profile(user_id)
        except RedisError as e:
            logger.error("Profile lookup failed", user_id=user_id, error=str(e))
            raise UpstreamError("Profile store unavailable") from e

        if profile is None:
            logger.warning("Authenticated user has no profile", user_id=user_id)
            raise AuthorizationError("Profile not found")

        return profile
