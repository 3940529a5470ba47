"""
Tests for the account seeder.
"""

import json
from decimal import Decimal
from pathlib import Path

import pytest

from src.scripts.seed_accounts import AccountSeeder, SeedError
from src.shared.models import UserRole


@pytest.fixture
def seed_file(tmp_path: Path) -> Path:
    path = tmp_path / "seed_accounts.json"
    path.write_text(
        json.dumps(
            {
                "profiles": [
                    {"id": "user-admin", "email": "admin@example.com", "role": "admin"},
                    {"id": "user-emp", "email": "emp@example.com", "role": "employee"},
                    {"id": "user-plain", "email": "plain@example.com"},
                ],
                "discount_codes": [
                    {"code": "SAVE20", "discount_percentage": 20, "employee_id": "user-emp"},
                    {"code": "HALF", "discount_percentage": "50", "employee_id": "user-emp", "is_active": False},
                ],
            }
        )
    )
    return path


class TestAccountSeeder:
    async def test_seeds_profiles_and_codes(self, redis_client, seed_file) -> None:
        result = await AccountSeeder(redis_client, seed_file).seed()

        assert result.profiles_created == 3
        assert result.codes_created == 2
        assert result.errors == []

        assert (await redis_client.get_profile("user-admin")).role == UserRole.ADMIN
        assert (await redis_client.get_profile("user-plain")).role == UserRole.USER
        save20 = await redis_client.get_discount_code("SAVE20")
        assert save20.discount_percentage == Decimal("20")
        assert save20.id.startswith("dc_")
        assert (await redis_client.get_discount_code("HALF")).is_active is False

    async def test_rerun_is_idempotent(self, redis_client, seed_file) -> None:
        seeder = AccountSeeder(redis_client, seed_file)
        await seeder.seed()
        await redis_client.credit_referral("user-emp", "5.00")

        result = await seeder.seed()

        assert result.profiles_created == 0
        assert result.profiles_skipped == 3
        assert result.codes_skipped == 2
        # Existing profiles keep their counters
        assert (await redis_client.get_profile("user-emp")).points == 1

    async def test_invalid_entries_are_reported(self, redis_client, tmp_path) -> None:
        path = tmp_path / "bad.json"
        path.write_text(
            json.dumps(
                {
                    "profiles": [{"id": "user-x", "email": "x@example.com", "role": "superuser"}, {"id": "no-email"}],
                    "discount_codes": [{"code": "BIG", "discount_percentage": 150, "employee_id": "user-x"}],
                }
            )
        )

        result = await AccountSeeder(redis_client, path).seed()

        assert result.profiles_created == 0
        assert result.codes_created == 0
        assert len(result.errors) == 3
        assert await redis_client.get_discount_code("BIG") is None

    async def test_missing_file(self, redis_client, tmp_path) -> None:
        with pytest.raises(SeedError, match="not found"):
            await AccountSeeder(redis_client, tmp_path / "absent.json").seed()

    async def test_invalid_json(self, redis_client, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{profiles: ")

        with pytest.raises(SeedError, match="parse"):
            await AccountSeeder(redis_client, path).seed()
