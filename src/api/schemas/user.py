"""
Pydantic schemas for user profile listings.
"""

from datetime import datetime

from src.api.schemas.common import ApiModel
from src.shared.models import UserProfile, UserRole


class UserSummary(ApiModel):
    id: str
    email: str
    role: UserRole
    points: int = 0
    commission_earned: float = 0.0
    subscription_status: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_profile(cls, profile: UserProfile) -> "UserSummary":
        return cls(
            id=profile.id,
            email=profile.email,
            role=profile.role,
            points=profile.points,
            commission_earned=float(profile.commission_earned),
            subscription_status=profile.subscription_status,
            created_at=profile.created_at,
        )
