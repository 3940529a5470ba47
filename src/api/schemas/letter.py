"""
Pydantic schemas for the letter endpoints.

Several request fields accept more than one name because different clients
send different keys for the same thing (``status`` / ``newStatus``,
``notes`` / ``adminNotes`` / ``lawyerNotes``, ``assignedReviewerId`` /
``assignedLawyerId`` / ``lawyerId``).
"""

from datetime import datetime

from pydantic import AliasChoices, Field

from src.api.schemas.common import ApiModel
from src.shared.models import Letter, LetterRequestFields, LetterStatus, StatusHistoryEntry, UserProfile

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class GenerateDraftRequest(ApiModel):
    """
    Request body for POST /api/v1/generate-draft.

    Either ``letterRequest`` (structured) or ``title`` (template payload)
    must be present.
    """

    letter_request: LetterRequestFields | None = None
    title: str | None = None
    template_body: str | None = None
    template_fields: dict[str, str] | None = None
    additional_context: str | None = None
    tone: str | None = Field(default=None, description="e.g. Formal, Aggressive, Conciliatory, Neutral")
    length: str | None = Field(default=None, description="Short, Medium or Long")
    user_id: str | None = Field(default=None, description="Owner of a new letter (staff only)")
    letter_id: str | None = Field(default=None, description="Existing letter to draft")


class GenerateDraftResponse(ApiModel):
    letter_id: str
    ai_draft: str
    status: LetterStatus


class UpdateStatusRequest(ApiModel):
    """Request body for POST /api/v1/update-letter-status."""

    letter_id: str = Field(..., min_length=1)
    status: LetterStatus = Field(
        ...,
        validation_alias=AliasChoices("status", "newStatus"),
    )
    notes: str | None = Field(
        default=None,
        validation_alias=AliasChoices("notes", "adminNotes", "lawyerNotes"),
    )
    assigned_reviewer_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("assignedReviewerId", "assignedLawyerId", "lawyerId"),
    )
    notify_user: bool = True


class LetterSummary(ApiModel):
    """Compact view of a letter."""

    id: str
    title: str
    status: LetterStatus
    user_id: str
    assigned_reviewer_id: str | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None

    @classmethod
    def from_letter(cls, letter: Letter) -> "LetterSummary":
        return cls.model_validate(letter.model_dump())


class UpdateStatusResponse(ApiModel):
    letter: LetterSummary
    old_status: LetterStatus
    new_status: LetterStatus
    history_id: str


class SendEmailRequest(ApiModel):
    """Request body for POST /api/v1/send-email."""

    letter_id: str = Field(..., min_length=1)
    recipient_email: str = Field(..., pattern=EMAIL_PATTERN)
    subject: str = Field(..., min_length=1)
    sender_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)


class SendEmailResponse(ApiModel):
    letter_id: str
    sent_to: str
    status: LetterStatus
    sent_at: datetime | None = None


class CreateLetterRequest(ApiModel):
    """Request body for POST /api/v1/letters. The letter starts in ``draft``."""

    title: str = Field(..., min_length=1)
    content: str | None = None
    letter_type: str = "general"
    letter_request: LetterRequestFields | None = None


class LetterDetail(ApiModel):
    """Full letter record."""

    id: str
    user_id: str
    title: str
    sender_name: str | None = None
    sender_address: str | None = None
    attorney_name: str | None = None
    recipient: str | None = None
    subject: str | None = None
    desired_resolution: str | None = None
    letter_type: str
    content: str | None = None
    ai_draft: str | None = None
    status: LetterStatus
    assigned_reviewer_id: str | None = None
    notes: str | None = None
    recipient_email: str | None = None
    created_at: datetime
    updated_at: datetime
    sent_at: datetime | None = None

    @classmethod
    def from_letter(cls, letter: Letter) -> "LetterDetail":
        return cls.model_validate(letter.model_dump())


class AdminLetterDetail(LetterDetail):
    """Letter with its owner's email and role, for the admin listing."""

    owner_email: str | None = None
    owner_role: str | None = None

    @classmethod
    def from_letter_and_owner(cls, letter: Letter, owner: UserProfile | None) -> "AdminLetterDetail":
        return cls.model_validate(
            {
                **letter.model_dump(),
                "owner_email": owner.email if owner else None,
                "owner_role": owner.role.value if owner else None,
            }
        )


class StatusHistoryItem(ApiModel):
    id: str
    old_status: LetterStatus
    new_status: LetterStatus
    changed_by: str
    notes: str | None = None
    changed_at: datetime

    @classmethod
    def from_entry(cls, entry: StatusHistoryEntry) -> "StatusHistoryItem":
        return cls.model_validate(entry.model_dump())
