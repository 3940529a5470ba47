"""
Async Redis client wrapper: the service's single logical database.

Each table of the letter service lives in its own keyspace:

- ``letter:{id}`` JSON record, indexed by creation time, status and owner
- ``letter_history:{id}`` append-only list of status transitions
- ``profile:{id}`` hash (points and commission_cents are atomic counters)
- ``discount_code:{code}`` hash (usage_count is an atomic counter)
- ``discount_usage:{code_id}`` append-only list of redemptions
- ``subscription:{id}`` JSON record

Writes that must land together are sent as one MULTI pipeline.
"""

import json
from decimal import Decimal
from typing import Any

import redis.asyncio as redis
import structlog

from src.shared.config import DEFAULT_REDIS_URL
from src.shared.models import (
    DiscountCode,
    DiscountUsageRecord,
    Letter,
    LetterStatus,
    StatusHistoryEntry,
    Subscription,
    UserProfile,
    from_cents,
    to_cents,
    to_hash_mapping,
)

logger = structlog.get_logger(__name__)

STATUS_UPDATES_CHANNEL = "letter_updates"

# Commission is kept as whole cents so HINCRBY stays exact
COMMISSION_CENTS_FIELD = "commission_cents"


class RedisClient:
    """
    Async Redis client for letter workflow records.

    Provides typed methods for each table and uses connection pooling for
    efficient resource usage. The connection is opened lazily on first use.
    """

    def __init__(self, redis_url: str | None = None) -> None:
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL.
        """
        self._redis_url = redis_url or DEFAULT_REDIS_URL
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Establish connection to Redis with pooling."""
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                decode_responses=True,
                max_connections=10,
            )
            logger.info("Redis client connected", url=self._redis_url)

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("Redis client closed")

    async def _ensure_connected(self) -> redis.Redis:
        """Ensure client is connected, reconnecting if necessary."""
        if self._client is None:
            await self.connect()
        assert self._client is not None
        return self._client

    # Key helpers

    def _letter_key(self, letter_id: str) -> str:
        return f"letter:{letter_id}"

    def _history_key(self, letter_id: str) -> str:
        return f"letter_history:{letter_id}"

    def _status_index_key(self, status: LetterStatus | str) -> str:
        return f"letters_by_status:{LetterStatus(status).value}"

    def _owner_index_key(self, user_id: str) -> str:
        return f"letters_by_user:{user_id}"

    def _profile_key(self, user_id: str) -> str:
        return f"profile:{user_id}"

    def _discount_code_key(self, code: str) -> str:
        return f"discount_code:{code}"

    def _employee_codes_key(self, employee_id: str) -> str:
        return f"discount_codes_by_employee:{employee_id}"

    def _usage_key(self, discount_code_id: str) -> str:
        return f"discount_usage:{discount_code_id}"

    def _subscription_key(self, subscription_id: str) -> str:
        return f"subscription:{subscription_id}"

    def _user_subscriptions_key(self, user_id: str) -> str:
        return f"subscriptions_by_user:{user_id}"

    # =========================================================================
    # Letter Operations
    # =========================================================================

    async def store_letter(self, letter: Letter) -> None:
        """
        Store a new letter and add it to the creation, status and owner indexes.

        Args:
            letter: The letter to store.
        """
        client = await self._ensure_connected()
        timestamp = letter.created_at.timestamp()

        async with client.pipeline() as pipe:
            await pipe.set(self._letter_key(letter.id), letter.model_dump_json())
            await pipe.zadd("letters", {letter.id: timestamp})
            await pipe.zadd(self._status_index_key(letter.status), {letter.id: timestamp})
            await pipe.zadd(self._owner_index_key(letter.user_id), {letter.id: timestamp})
            await pipe.execute()

        logger.debug("Letter stored", letter_id=letter.id, status=letter.status)

    async def get_letter(self, letter_id: str) -> Letter | None:
        """
        Retrieve a letter by ID.

        Returns:
            The letter if found, None otherwise.
        """
        client = await self._ensure_connected()
        data = await client.get(self._letter_key(letter_id))
        if data is None:
            return None
        return Letter.model_validate_json(data)

    async def save_transition(
        self,
        letter: Letter,
        old_status: LetterStatus,
        entry: StatusHistoryEntry,
    ) -> None:
        """
        Persist an updated letter together with its history entry.

        The letter record, the status index move and the history append are
        written in one MULTI transaction, so a transition is never recorded
        without its history entry or the other way round.

        Args:
            letter: The letter with its new status and field changes applied.
            old_status: Status before the transition.
            entry: History entry describing the transition.
        """
        client = await self._ensure_connected()
        timestamp = letter.created_at.timestamp()

        async with client.pipeline(transaction=True) as pipe:
            await pipe.set(self._letter_key(letter.id), letter.model_dump_json())
            if old_status != letter.status:
                await pipe.zrem(self._status_index_key(old_status), letter.id)
                await pipe.zadd(self._status_index_key(letter.status), {letter.id: timestamp})
            await pipe.rpush(self._history_key(letter.id), entry.model_dump_json())
            await pipe.execute()

        logger.debug(
            "Letter transition saved",
            letter_id=letter.id,
            old_status=old_status,
            new_status=letter.status,
        )

    async def get_status_history(self, letter_id: str) -> list[StatusHistoryEntry]:
        """Return a letter's status history, oldest first."""
        client = await self._ensure_connected()
        raw_entries = await client.lrange(self._history_key(letter_id), 0, -1)
        return [StatusHistoryEntry.model_validate_json(raw) for raw in raw_entries]

    async def _load_letters(self, letter_ids: list[str]) -> list[Letter]:
        letters = []
        for letter_id in letter_ids:
            letter = await self.get_letter(letter_id)
            if letter:
                letters.append(letter)
        return letters

    async def list_letters(self, limit: int | None = None, offset: int = 0) -> list[Letter]:
        """List all letters, newest first."""
        client = await self._ensure_connected()
        stop = -1 if limit is None else offset + limit - 1
        letter_ids = await client.zrevrange("letters", offset, stop)
        return await self._load_letters(letter_ids)

    async def list_letters_for_user(self, user_id: str) -> list[Letter]:
        """List a user's letters, newest first."""
        client = await self._ensure_connected()
        letter_ids = await client.zrevrange(self._owner_index_key(user_id), 0, -1)
        return await self._load_letters(letter_ids)

    async def list_letters_by_status(self, statuses: list[LetterStatus]) -> list[Letter]:
        """List letters in any of the given statuses, oldest first."""
        client = await self._ensure_connected()

        scored: list[tuple[float, str]] = []
        for status in statuses:
            members = await client.zrange(self._status_index_key(status), 0, -1, withscores=True)
            scored.extend((score, letter_id) for letter_id, score in members)

        scored.sort()
        return await self._load_letters([letter_id for _, letter_id in scored])

    async def publish_status_update(self, payload: dict[str, Any]) -> int:
        """
        Publish a status change on the realtime channel.

        Returns:
            Number of subscribers that received the message.
        """
        client = await self._ensure_connected()
        return await client.publish(STATUS_UPDATES_CHANNEL, json.dumps(payload, default=str))

    # =========================================================================
    # Profile Operations
    # =========================================================================

    async def store_profile(self, profile: UserProfile) -> None:
        """Create or replace a user profile."""
        client = await self._ensure_connected()
        timestamp = profile.created_at.timestamp() if profile.created_at else 0

        mapping = to_hash_mapping(profile)
        mapping.pop("commission_earned", None)
        mapping[COMMISSION_CENTS_FIELD] = str(to_cents(profile.commission_earned))

        async with client.pipeline() as pipe:
            await pipe.delete(self._profile_key(profile.id))
            await pipe.hset(self._profile_key(profile.id), mapping=mapping)
            await pipe.zadd("profiles", {profile.id: timestamp})
            await pipe.execute()

    async def get_profile(self, user_id: str) -> UserProfile | None:
        """Retrieve a profile by user ID."""
        client = await self._ensure_connected()
        data = await client.hgetall(self._profile_key(user_id))
        if not data:
            return None
        cents = data.pop(COMMISSION_CENTS_FIELD, None)
        if cents is not None:
            data["commission_earned"] = from_cents(int(cents))
        return UserProfile.model_validate(data)

    async def list_profiles(self) -> list[UserProfile]:
        """List all profiles, newest first."""
        client = await self._ensure_connected()
        profiles = []
        for user_id in await client.zrevrange("profiles", 0, -1):
            profile = await self.get_profile(user_id)
            if profile:
                profiles.append(profile)
        return profiles

    async def credit_referral(self, employee_id: str, commission: Decimal) -> bool:
        """
        Add one referral point and the commission to an employee's profile.

        Returns:
            True if the profile exists and was updated, False otherwise.
        """
        client = await self._ensure_connected()
        key = self._profile_key(employee_id)
        if not await client.exists(key):
            return False

        async with client.pipeline(transaction=True) as pipe:
            await pipe.hincrby(key, "points", 1)
            await pipe.hincrby(key, COMMISSION_CENTS_FIELD, to_cents(commission))
            await pipe.execute()
        return True

    async def set_subscription_status(self, user_id: str, status: str) -> bool:
        """Set a profile's subscription status. Returns False if the profile is missing."""
        client = await self._ensure_connected()
        key = self._profile_key(user_id)
        if not await client.exists(key):
            return False
        await client.hset(key, "subscription_status", status)
        return True

    # =========================================================================
    # Discount Code Operations
    # =========================================================================

    async def create_discount_code(self, discount_code: DiscountCode) -> bool:
        """
        Store a new discount code.

        Returns:
            True if created, False if the code already exists.
        """
        client = await self._ensure_connected()
        key = self._discount_code_key(discount_code.code)
        if await client.exists(key):
            return False

        timestamp = discount_code.created_at.timestamp() if discount_code.created_at else 0
        async with client.pipeline(transaction=True) as pipe:
            await pipe.hset(key, mapping=to_hash_mapping(discount_code))
            await pipe.zadd("discount_codes", {discount_code.code: timestamp})
            await pipe.sadd(self._employee_codes_key(discount_code.employee_id), discount_code.code)
            await pipe.execute()
        return True

    async def get_discount_code(self, code: str) -> DiscountCode | None:
        """Retrieve a discount code by its exact (case-sensitive) code string."""
        client = await self._ensure_connected()
        data = await client.hgetall(self._discount_code_key(code))
        if not data:
            return None
        return DiscountCode.model_validate(data)

    async def list_discount_codes(self, employee_id: str | None = None) -> list[DiscountCode]:
        """List discount codes, newest first, optionally for one employee."""
        client = await self._ensure_connected()
        codes = await client.zrevrange("discount_codes", 0, -1)
        if employee_id is not None:
            owned = await client.smembers(self._employee_codes_key(employee_id))
            codes = [code for code in codes if code in owned]

        result = []
        for code in codes:
            discount_code = await self.get_discount_code(code)
            if discount_code:
                result.append(discount_code)
        return result

    async def set_discount_code_active(self, code: str, active: bool) -> bool:
        """Activate or deactivate a code. Returns False if the code is missing."""
        client = await self._ensure_connected()
        key = self._discount_code_key(code)
        if not await client.exists(key):
            return False
        await client.hset(key, "is_active", "1" if active else "0")
        return True

    async def record_redemption(
        self,
        subscription: Subscription,
        usage: DiscountUsageRecord,
    ) -> int:
        """
        Record a coupon redemption atomically.

        Creates the subscription, appends the usage record and increments
        the code's usage counter in one MULTI transaction.

        Returns:
            The code's usage count after the increment.
        """
        client = await self._ensure_connected()

        async with client.pipeline(transaction=True) as pipe:
            await pipe.set(self._subscription_key(subscription.id), subscription.model_dump_json())
            await pipe.zadd(
                self._user_subscriptions_key(subscription.user_id),
                {subscription.id: subscription.created_at.timestamp()},
            )
            await pipe.rpush(self._usage_key(usage.discount_code_id), usage.model_dump_json())
            await pipe.hincrby(self._discount_code_key(usage.code), "usage_count", 1)
            results = await pipe.execute()

        logger.debug(
            "Coupon redemption recorded",
            subscription_id=subscription.id,
            code=usage.code,
        )
        return int(results[-1])

    async def get_subscription(self, subscription_id: str) -> Subscription | None:
        client = await self._ensure_connected()
        data = await client.get(self._subscription_key(subscription_id))
        if data is None:
            return None
        return Subscription.model_validate_json(data)

    async def list_discount_usage(self, discount_code_id: str) -> list[DiscountUsageRecord]:
        client = await self._ensure_connected()
        raw_records = await client.lrange(self._usage_key(discount_code_id), 0, -1)
        return [DiscountUsageRecord.model_validate_json(raw) for raw in raw_records]

    # =========================================================================
    # Health Check
    # =========================================================================

    async def ping(self) -> bool:
        """
        Check Redis connectivity.

        Returns:
            True if connected, False otherwise.
        """
        try:
            client = await self._ensure_connected()
            await client.ping()
            return True
        except Exception:
            return False
