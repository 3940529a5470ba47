"""
Letters API router.

Draft generation, status updates, sending and read access for letters.
Authentication is handled by AuthMiddleware; ownership and role checks
happen in the status engine.
"""

import structlog
from fastapi import APIRouter
from fastapi.responses import Response

from src.api.dependencies import (
    CallerDep,
    DraftGeneratorDep,
    EmailSenderDep,
    StaffDep,
    StatusEngineDep,
)
from src.api.schemas.common import Envelope
from src.api.schemas.letter import (
    CreateLetterRequest,
    GenerateDraftRequest,
    GenerateDraftResponse,
    LetterDetail,
    LetterSummary,
    SendEmailRequest,
    SendEmailResponse,
    StatusHistoryItem,
    UpdateStatusRequest,
    UpdateStatusResponse,
)
from src.api.services.pdf_generator import LetterPDFGenerator
from src.shared.errors import AuthorizationError, InvalidTransitionError, ValidationError
from src.shared.models import LetterStatus
from src.workflow.email_sender import EmailMessage
from src.workflow.status_engine import can_transition, valid_transitions

logger = structlog.get_logger(__name__)

router = APIRouter()

# Owners may download a letter once it has been approved
DOWNLOADABLE_STATUSES = {LetterStatus.APPROVED, LetterStatus.COMPLETED}


@router.post(
    "/generate-draft",
    response_model=Envelope[GenerateDraftResponse],
    responses={
        400: {"description": "Missing fields or invalid transition"},
        403: {"description": "Drafting for another user"},
        404: {"description": "Letter not found"},
        500: {"description": "Drafting not configured or LLM failure"},
    },
)
async def generate_draft(
    request: GenerateDraftRequest,
    caller: CallerDep,
    drafts: DraftGeneratorDep,
) -> Envelope[GenerateDraftResponse]:
    """Generate an AI draft for a new or existing letter and move it to in_review."""
    logger.info(
        "Draft requested",
        letter_id=request.letter_id,
        structured=request.letter_request is not None,
    )

    result = await drafts.generate(
        caller,
        letter_request=request.letter_request,
        title=request.title,
        template_body=request.template_body,
        template_fields=request.template_fields,
        additional_context=request.additional_context,
        tone=request.tone,
        length=request.length,
        user_id=request.user_id,
        letter_id=request.letter_id,
    )

    return Envelope(
        data=GenerateDraftResponse(
            letter_id=result.letter.id,
            ai_draft=result.ai_draft,
            status=result.letter.status,
        ),
        message="Letter draft generated successfully",
    )


@router.post(
    "/update-letter-status",
    response_model=Envelope[UpdateStatusResponse],
    responses={
        400: {"description": "Invalid status transition"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Letter not found"},
    },
)
async def update_letter_status(
    request: UpdateStatusRequest,
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Envelope[UpdateStatusResponse]:
    """Move a letter along the status graph (admins may move it anywhere)."""
    letter, entry = await engine.apply_transition(
        request.letter_id,
        request.status,
        caller,
        notes=request.notes,
        assigned_reviewer_id=request.assigned_reviewer_id,
        notify=request.notify_user,
    )

    return Envelope(
        data=UpdateStatusResponse(
            letter=LetterSummary.from_letter(letter),
            old_status=entry.old_status,
            new_status=entry.new_status,
            history_id=entry.id,
        ),
        message="Letter status updated successfully",
    )


@router.post(
    "/send-email",
    response_model=Envelope[SendEmailResponse],
    responses={
        400: {"description": "Letter not ready to send"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Letter not found"},
        500: {"description": "Email provider failure"},
    },
)
async def send_email(
    request: SendEmailRequest,
    caller: CallerDep,
    engine: StatusEngineDep,
    sender: EmailSenderDep,
) -> Envelope[SendEmailResponse]:
    """Email the letter to its recipient and mark it completed."""
    letter = await engine.get_letter(request.letter_id, caller)

    if not can_transition(letter.status, LetterStatus.COMPLETED, caller):
        raise InvalidTransitionError(
            current=letter.status.value,
            requested=LetterStatus.COMPLETED.value,
            valid_transitions=[s.value for s in valid_transitions(letter.status)],
        )

    body = letter.ai_draft or letter.content
    if not body:
        raise ValidationError("Letter has no content to send")

    result = await sender.send(
        EmailMessage(
            to=request.recipient_email,
            subject=request.subject,
            html=LetterPDFGenerator().render_body(body),
            text=body,
            from_email=request.sender_email,
        )
    )
    logger.info(
        "Letter emailed",
        letter_id=letter.id,
        provider=result.provider,
        simulated=result.simulated,
    )

    updated, _ = await engine.apply_transition(
        letter.id,
        LetterStatus.COMPLETED,
        caller,
        changes={"recipient_email": request.recipient_email},
    )

    return Envelope(
        data=SendEmailResponse(
            letter_id=updated.id,
            sent_to=request.recipient_email,
            status=updated.status,
            sent_at=updated.sent_at,
        ),
        message="Email sent successfully",
    )


@router.post("/letters", response_model=Envelope[LetterDetail])
async def create_letter(
    request: CreateLetterRequest,
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Envelope[LetterDetail]:
    """Create a letter in draft for the caller."""
    fields = request.letter_request.model_dump() if request.letter_request else {}
    fields.setdefault("letter_type", request.letter_type)

    letter = await engine.create_letter(
        caller.id,
        request.title,
        content=request.content,
        **fields,
    )
    return Envelope(data=LetterDetail.from_letter(letter), message="Letter created")


@router.get("/letters", response_model=Envelope[list[LetterDetail]])
async def list_my_letters(
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Envelope[list[LetterDetail]]:
    """The caller's letters, newest first, in every status."""
    letters = await engine.letters_for_owner(caller)
    return Envelope(data=[LetterDetail.from_letter(letter) for letter in letters])


@router.get("/letters/requiring-action", response_model=Envelope[list[LetterDetail]])
async def letters_requiring_action(
    caller: StaffDep,
    engine: StatusEngineDep,
) -> Envelope[list[LetterDetail]]:
    """Letters waiting on a reviewer, oldest first."""
    letters = await engine.letters_requiring_action(caller)
    return Envelope(data=[LetterDetail.from_letter(letter) for letter in letters])


@router.get("/letters/{letter_id}", response_model=Envelope[LetterDetail])
async def get_letter(
    letter_id: str,
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Envelope[LetterDetail]:
    letter = await engine.get_letter(letter_id, caller)
    return Envelope(data=LetterDetail.from_letter(letter))


@router.get("/letters/{letter_id}/history", response_model=Envelope[list[StatusHistoryItem]])
async def get_letter_history(
    letter_id: str,
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Envelope[list[StatusHistoryItem]]:
    """Status timeline for a letter, oldest first."""
    entries = await engine.history(letter_id, caller)
    return Envelope(data=[StatusHistoryItem.from_entry(entry) for entry in entries])


@router.get(
    "/letters/{letter_id}/pdf",
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "Letter PDF"},
        400: {"description": "No draft to render"},
        403: {"description": "Not yet approved or insufficient permissions"},
        404: {"description": "Letter not found"},
    },
)
async def download_letter_pdf(
    letter_id: str,
    caller: CallerDep,
    engine: StatusEngineDep,
) -> Response:
    """Download the letter as PDF. Owners must wait for approval; staff may preview."""
    letter = await engine.get_letter(letter_id, caller)

    if not letter.ai_draft:
        raise ValidationError("Letter has no draft to render")
    if not caller.is_staff and letter.status not in DOWNLOADABLE_STATUSES:
        raise AuthorizationError("Letter is not yet approved for download")

    pdf_bytes = LetterPDFGenerator().generate(letter)

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="letter-{letter.id}.pdf"',
        },
    )
