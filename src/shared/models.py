"""
Shared data models.

Records persisted in the store: letters and their status history, user
profiles, discount codes, discount usage and subscriptions.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LetterStatus(StrEnum):
    """Status of a letter in the review workflow."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    IN_REVIEW = "in_review"
    APPROVED = "approved"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class UserRole(StrEnum):
    """Role held by a user profile."""

    USER = "user"
    EMPLOYEE = "employee"
    ADMIN = "admin"


class LetterRequestFields(BaseModel):
    """Structured fields describing the letter a user wants drafted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    sender_name: str = Field(..., min_length=1)
    sender_address: str = ""
    attorney_name: str = ""
    recipient: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    desired_resolution: str = Field(..., min_length=1)
    letter_type: str = Field(..., min_length=1)


class Letter(BaseModel):
    """A legal-correspondence record moving through the review workflow."""

    id: str
    user_id: str
    title: str
    sender_name: str | None = None
    sender_address: str | None = None
    attorney_name: str | None = None
    recipient: str | None = None
    subject: str | None = None
    desired_resolution: str | None = None
    letter_type: str = "general"
    content: str | None = None
    ai_draft: str | None = None
    status: LetterStatus = LetterStatus.DRAFT
    assigned_reviewer_id: str | None = None
    notes: str | None = None
    recipient_email: str | None = None
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None

    def request_fields(self) -> LetterRequestFields | None:
        """Return the structured request fields, or None if the letter lacks them."""
        if not (self.sender_name and self.recipient and self.subject and self.desired_resolution):
            return None
        return LetterRequestFields(
            sender_name=self.sender_name,
            sender_address=self.sender_address or "",
            attorney_name=self.attorney_name or "",
            recipient=self.recipient,
            subject=self.subject,
            desired_resolution=self.desired_resolution,
            letter_type=self.letter_type,
        )


class StatusHistoryEntry(BaseModel):
    """One accepted status transition. Never mutated after creation."""

    id: str
    letter_id: str
    old_status: LetterStatus
    new_status: LetterStatus
    changed_by: str
    notes: str | None = None
    changed_at: datetime


class UserProfile(BaseModel):
    """A user profile; also the authenticated caller identity."""

    id: str
    email: str
    role: UserRole = UserRole.USER
    points: int = 0
    commission_earned: Decimal = Decimal("0")
    subscription_status: str | None = None
    created_at: datetime | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff(self) -> bool:
        """Admins and employees may act on letters they do not own."""
        return self.role in (UserRole.ADMIN, UserRole.EMPLOYEE)


class DiscountCode(BaseModel):
    """A referral coupon owned by an employee."""

    id: str
    code: str
    discount_percentage: Decimal = Field(ge=0, le=100)
    employee_id: str
    is_active: bool = True
    usage_count: int = 0
    created_at: datetime | None = None


class DiscountUsageRecord(BaseModel):
    """One coupon redemption. Append-only."""

    id: str
    discount_code_id: str
    code: str
    user_id: str
    employee_id: str
    subscription_amount: Decimal
    discount_amount: Decimal
    commission_amount: Decimal
    used_at: datetime


class Subscription(BaseModel):
    """A user's paid plan."""

    id: str
    user_id: str
    plan_type: str
    amount: Decimal
    original_amount: Decimal
    discount_applied: Decimal = Decimal("0")
    discount_code_id: str | None = None
    coupon_code: str | None = None
    employee_id: str | None = None
    status: str = "active"
    letters_allowed: int
    created_at: datetime


def to_hash_mapping(model: BaseModel) -> dict[str, Any]:
    """Flatten a model into a Redis hash mapping (no None values, bools as 0/1)."""
    mapping: dict[str, Any] = {}
    for key, value in model.model_dump(mode="json", exclude_none=True).items():
        if isinstance(value, bool):
            mapping[key] = "1" if value else "0"
        else:
            mapping[key] = str(value)
    return mapping


def to_cents(amount: Decimal) -> int:
    """Whole cents in ``amount``, rounded half-up."""
    return int((Decimal(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)
