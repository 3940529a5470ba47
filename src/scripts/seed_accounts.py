"""
Account seeder for local development and first deployment.

Creates user profiles (with their roles) and employee discount codes from a
JSON file. Re-running is safe: existing profiles and codes are skipped.

Usage::

    python -m src.scripts.seed_accounts seed_accounts.json

Config format::

    {
      "profiles": [{"id": "...", "email": "...", "role": "admin"}],
      "discount_codes": [{"code": "SAVE20", "discount_percentage": 20, "employee_id": "..."}]
    }
"""

import asyncio
import json
import os
import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import structlog
from pydantic import ValidationError as PydanticValidationError
from ulid import ULID

from src.shared.config import AppConfig
from src.shared.logging_config import configure_logging
from src.shared.models import DiscountCode, UserProfile, UserRole
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)


class SeedError(Exception):
    """Error during account seeding."""

    pass


@dataclass
class SeedResult:
    """Result of an account seeding run."""

    profiles_created: int = 0
    profiles_skipped: int = 0
    codes_created: int = 0
    codes_skipped: int = 0
    errors: list[str] = field(default_factory=list)


class AccountSeeder:
    """Seeds profiles and discount codes into the store."""

    def __init__(self, redis: RedisClient, config_path: Path | str) -> None:
        self._redis = redis
        self._config_path = Path(config_path)

    def _load_config(self) -> dict:
        """
        Load the seed configuration file.

        Raises:
            SeedError: If config file not found or invalid.
        """
        if not self._config_path.exists():
            raise SeedError(f"Config file not found: {self._config_path}")

        try:
            with open(self._config_path) as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise SeedError(f"Failed to parse config file: {e}") from e

    async def seed(self) -> SeedResult:
        result = SeedResult()
        data = self._load_config()

        logger.info("Starting account seeding", config_path=str(self._config_path))

        for profile_data in data.get("profiles", []):
            await self._seed_profile(profile_data, result)

        for code_data in data.get("discount_codes", []):
            await self._seed_code(code_data, result)

        logger.info(
            "Account seeding complete",
            profiles_created=result.profiles_created,
            profiles_skipped=result.profiles_skipped,
            codes_created=result.codes_created,
            codes_skipped=result.codes_skipped,
            errors=len(result.errors),
        )
        return result

    async def _seed_profile(self, data: dict, result: SeedResult) -> None:
        try:
            profile = UserProfile(
                id=data["id"],
                email=data["email"],
                role=UserRole(data.get("role", UserRole.USER)),
                created_at=datetime.now(UTC),
            )
        except (KeyError, ValueError, PydanticValidationError) as e:
            error_msg = f"Invalid profile entry {data!r}: {e}"
            logger.warning(error_msg)
            result.errors.append(error_msg)
            return

        if await self._redis.get_profile(profile.id):
            logger.info("Profile already exists, skipping", user_id=profile.id)
            result.profiles_skipped += 1
            return

        await self._redis.store_profile(profile)
        logger.info("Profile created", user_id=profile.id, role=profile.role)
        result.profiles_created += 1

    async def _seed_code(self, data: dict, result: SeedResult) -> None:
        try:
            discount_code = DiscountCode(
                id=f"dc_{ULID()}",
                code=data["code"],
                discount_percentage=Decimal(str(data["discount_percentage"])),
                employee_id=data["employee_id"],
                is_active=data.get("is_active", True),
                created_at=datetime.now(UTC),
            )
        except (KeyError, ValueError, PydanticValidationError) as e:
            error_msg = f"Invalid discount code entry {data!r}: {e}"
            logger.warning(error_msg)
            result.errors.append(error_msg)
            return

        if not await self._redis.create_discount_code(discount_code):
            logger.info("Discount code already exists, skipping", code=discount_code.code)
            result.codes_skipped += 1
            return

        logger.info("Discount code created", code=discount_code.code, employee_id=discount_code.employee_id)
        result.codes_created += 1


async def main() -> None:
    """Run the account seeder from command line."""
    config = AppConfig.from_env()
    configure_logging(config.log_level, json_output=config.log_format == "json")

    config_path = sys.argv[1] if len(sys.argv) > 1 else os.getenv("SEED_CONFIG_PATH", "seed_accounts.json")

    redis_client = RedisClient(config.redis_url)
    seeder = AccountSeeder(redis_client, config_path)

    try:
        result = await seeder.seed()
    except SeedError as e:
        logger.error("Seeding failed", error=str(e))
        sys.exit(1)
    finally:
        await redis_client.close()

    if result.errors:
        logger.warning("Seeding completed with errors", errors=result.errors)
        sys.exit(1)
    logger.info("Seeding completed successfully")


if __name__ == "__main__":
    asyncio.run(main())
