"""
Admin listings of all letters and all users.
"""

import structlog
from fastapi import APIRouter, Query

from src.api.dependencies import AdminDep, RedisClientDep
from src.api.schemas.common import Envelope
from src.api.schemas.letter import AdminLetterDetail
from src.api.schemas.user import UserSummary

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/get-all-letters", response_model=Envelope[list[AdminLetterDetail]])
async def get_all_letters(
    caller: AdminDep,
    redis: RedisClientDep,
    limit: int | None = Query(default=None, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> Envelope[list[AdminLetterDetail]]:
    """All letters with their owner's email and role, newest first."""
    letters = await redis.list_letters(limit=limit, offset=offset)

    owners = {}
    for user_id in {letter.user_id for letter in letters}:
        owners[user_id] = await redis.get_profile(user_id)

    logger.info("Admin listed letters", admin_id=caller.id, count=len(letters))
    return Envelope(
        data=[AdminLetterDetail.from_letter_and_owner(letter, owners[letter.user_id]) for letter in letters]
    )


@router.get("/get-all-users", response_model=Envelope[list[UserSummary]])
async def get_all_users(
    caller: AdminDep,
    redis: RedisClientDep,
) -> Envelope[list[UserSummary]]:
    """All user profiles, newest first."""
    profiles = await redis.list_profiles()

    logger.info("Admin listed users", admin_id=caller.id, count=len(profiles))
    return Envelope(data=[UserSummary.from_profile(profile) for profile in profiles])
