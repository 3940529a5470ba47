"""
AI draft generation for letters.

DraftGenerator turns a letter request into draft text with the Claude API
and records the result on the letter through the status engine, so the
draft and the move to ``in_review`` land in one history-tracked transition.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any

import anthropic
import structlog

from src.drafting.letter_prompt import DEFAULT_LENGTH, DEFAULT_TONE, build_structured_prompt, build_template_prompt
from src.shared.config import AppConfig
from src.shared.errors import (
    AuthorizationError,
    ConfigurationError,
    InvalidTransitionError,
    UpstreamError,
    ValidationError,
)
from src.shared.models import Letter, LetterRequestFields, LetterStatus, UserProfile
from src.workflow.status_engine import LetterStatusEngine, can_transition, valid_transitions

logger = structlog.get_logger(__name__)


@dataclass
class DraftResult:
    """A generated draft and the letter it was stored on."""

    letter: Letter
    ai_draft: str
    metadata: dict[str, Any] = field(default_factory=dict)


class DraftGenerator:
    """Generates letter drafts with Claude."""

    def __init__(
        self,
        config: AppConfig,
        engine: LetterStatusEngine,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._config = config
        self._engine = engine
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self._config.anthropic_api_key)
        return self._client

    async def generate(
        self,
        actor: UserProfile,
        letter_request: LetterRequestFields | None = None,
        title: str | None = None,
        template_body: str | None = None,
        template_fields: dict[str, str] | None = None,
        additional_context: str | None = None,
        tone: str | None = None,
        length: str | None = None,
        user_id: str | None = None,
        letter_id: str | None = None,
    ) -> DraftResult:
        """
        Generate a draft and attach it to a letter.

        Without ``letter_id`` a new letter is created in ``submitted`` for
        ``user_id`` (default: the actor). A letter still in ``draft`` is
        submitted first. The finished draft moves the letter to ``in_review``.

        Raises:
            ConfigurationError: No Anthropic API key is configured.
            ValidationError: Neither a title nor a structured request was given.
            AuthorizationError: A non-staff actor targets another user's letter.
            NotFoundError: ``letter_id`` does not exist.
            InvalidTransitionError: The letter cannot move to ``in_review``.
            UpstreamError: The Claude API failed or returned no text.
        """
        if not self._config.anthropic_api_key:
            logger.error("Draft generation requested without ANTHROPIC_API_KEY")
            raise ConfigurationError("ANTHROPIC_API_KEY is not configured")

        if not title and letter_request is None:
            raise ValidationError("Missing required fields: title or letterRequest")

        owner_id = user_id or actor.id
        if owner_id != actor.id and not actor.is_staff:
            raise AuthorizationError("Cannot generate drafts for another user")

        if letter_request is not None:
            system_prompt, user_prompt = build_structured_prompt(letter_request)
        else:
            system_prompt, user_prompt = build_template_prompt(
                title=title,
                template_body=template_body,
                template_fields=template_fields,
                additional_context=additional_context,
                tone=tone or DEFAULT_TONE,
                length=length or DEFAULT_LENGTH,
            )

        if letter_id:
            letter = await self._prepare_existing(letter_id, actor)
        else:
            letter = await self._create_letter(
                owner_id,
                letter_request,
                title,
                content={
                    "letterRequest": letter_request.model_dump(by_alias=True) if letter_request else None,
                    "title": title,
                    "templateBody": template_body,
                    "templateFields": template_fields,
                    "additionalContext": additional_context,
                    "tone": tone,
                    "length": length,
                },
            )

        ai_draft, metadata = await self._call_claude(letter.id, system_prompt, user_prompt)

        updated, _ = await self._engine.apply_transition(
            letter.id,
            LetterStatus.IN_REVIEW,
            actor,
            changes={"ai_draft": ai_draft},
        )
        return DraftResult(letter=updated, ai_draft=ai_draft, metadata=metadata)

    async def _prepare_existing(self, letter_id: str, actor: UserProfile) -> Letter:
        letter = await self._engine.get_letter(letter_id, actor)

        # Check the whole path up front so a doomed request never reaches the API
        status = LetterStatus.SUBMITTED if letter.status == LetterStatus.DRAFT else letter.status
        if not can_transition(status, LetterStatus.IN_REVIEW, actor):
            raise InvalidTransitionError(
                current=letter.status.value,
                requested=LetterStatus.IN_REVIEW.value,
                valid_transitions=[s.value for s in valid_transitions(letter.status)],
            )

        if letter.status == LetterStatus.DRAFT:
            letter, _ = await self._engine.apply_transition(
                letter_id, LetterStatus.SUBMITTED, actor, notify=False
            )
        return letter

    async def _create_letter(
        self,
        owner_id: str,
        letter_request: LetterRequestFields | None,
        title: str | None,
        content: dict[str, Any],
    ) -> Letter:
        fields: dict[str, Any] = {
            "content": json.dumps({k: v for k, v in content.items() if v is not None}),
        }
        if letter_request is not None:
            fields.update(letter_request.model_dump())
        return await self._engine.create_letter(
            owner_id,
            title or letter_request.subject,
            status=LetterStatus.SUBMITTED,
            **fields,
        )

    async def _call_claude(
        self,
        letter_id: str,
        system_prompt: str,
        user_prompt: str,
    ) -> tuple[str, dict[str, Any]]:
        model = self._config.claude_model
        start_time = time.monotonic()

        try:
            message = await self._get_client().messages.create(
                model=model,
                max_tokens=self._config.draft_max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_prompt}],
            )
        except anthropic.APIError as e:
            logger.error("Claude API error", letter_id=letter_id, model=model, error=str(e))
            raise UpstreamError("Draft generation failed", details={"provider": "anthropic"}) from e

        text = "".join(
            getattr(block, "text", "") for block in message.content if getattr(block, "type", "text") == "text"
        ).strip()
        if not text:
            logger.error("Claude returned empty draft", letter_id=letter_id, model=model)
            raise UpstreamError("Failed to generate AI draft")

        duration = time.monotonic() - start_time
        metadata = {
            "model": model,
            "input_tokens": message.usage.input_tokens,
            "output_tokens": message.usage.output_tokens,
            "processing_time_seconds": round(duration, 2),
        }
        logger.info("Draft generated", letter_id=letter_id, **metadata)
        return text, metadata
