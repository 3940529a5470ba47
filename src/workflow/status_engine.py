"""
Letter lifecycle and status-transition engine.

Every change to a letter's status goes through LetterStatusEngine. The engine
checks that the actor may touch the letter, that the requested status is
reachable along the transition graph, writes the letter together with one
history entry, and then fires the best-effort side effects (owner
notification email and realtime status broadcast).

Admin bypass: an admin may move a letter to any status, including out of the
terminal ``completed`` state. It is the only exception to the graph.

Known gap: the read-then-write in apply_transition has no compare-and-swap,
so two concurrent transitions on the same letter can race. Letters are
expected to have a single writer at a time.
"""

import asyncio
from datetime import UTC, datetime
from typing import Any

import structlog
from ulid import ULID

from src.shared.errors import AuthorizationError, InvalidTransitionError, NotFoundError
from src.shared.models import Letter, LetterStatus, StatusHistoryEntry, UserProfile
from src.shared.redis_client import RedisClient
from src.workflow.notifications import NotificationDispatcher

logger = structlog.get_logger(__name__)

ALLOWED_TRANSITIONS: dict[LetterStatus, frozenset[LetterStatus]] = {
    LetterStatus.DRAFT: frozenset({LetterStatus.SUBMITTED, LetterStatus.CANCELLED}),
    LetterStatus.SUBMITTED: frozenset({LetterStatus.IN_REVIEW, LetterStatus.CANCELLED}),
    # Back to submitted for revisions
    LetterStatus.IN_REVIEW: frozenset(
        {LetterStatus.APPROVED, LetterStatus.SUBMITTED, LetterStatus.CANCELLED}
    ),
    LetterStatus.APPROVED: frozenset({LetterStatus.COMPLETED, LetterStatus.IN_REVIEW}),
    LetterStatus.COMPLETED: frozenset(),
    LetterStatus.CANCELLED: frozenset({LetterStatus.SUBMITTED}),
}

# Statuses that wait on a reviewer
ACTION_REQUIRED_STATUSES = [LetterStatus.SUBMITTED, LetterStatus.IN_REVIEW]


def generate_letter_id() -> str:
    """Generate a new letter ID with ltr_ prefix."""
    return f"ltr_{ULID()}"


def valid_transitions(status: LetterStatus | str) -> list[LetterStatus]:
    """Return the statuses reachable from ``status``, in a stable order."""
    targets = ALLOWED_TRANSITIONS[LetterStatus(status)]
    return [s for s in LetterStatus if s in targets]


def can_transition(
    current: LetterStatus | str,
    requested: LetterStatus | str,
    actor: UserProfile,
) -> bool:
    """
    Check whether ``actor`` may move a letter from ``current`` to ``requested``.

    Admins bypass the graph entirely.
    """
    if actor.is_admin:
        return True
    return LetterStatus(requested) in ALLOWED_TRANSITIONS[LetterStatus(current)]


def ensure_can_access(letter: Letter, actor: UserProfile) -> None:
    """Raise AuthorizationError unless actor is staff or owns the letter."""
    if actor.is_staff or letter.user_id == actor.id:
        return
    logger.warning(
        "Letter access denied",
        letter_id=letter.id,
        actor_id=actor.id,
        actor_role=actor.role,
    )
    raise AuthorizationError("Insufficient permissions")


class LetterStatusEngine:
    """
    Validates and applies letter status transitions.

    Side effects after a successful transition are scheduled as independent
    tasks; their failures are logged and never reach the caller.
    """

    def __init__(
        self,
        redis: RedisClient,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._redis = redis
        self._dispatcher = dispatcher
        self._pending: set[asyncio.Task] = set()

    async def create_letter(
        self,
        owner_id: str,
        title: str,
        status: LetterStatus = LetterStatus.DRAFT,
        **fields: Any,
    ) -> Letter:
        """
        Create a new letter owned by ``owner_id``.

        Only ``draft`` and ``submitted`` are valid initial statuses.
        """
        if status not in (LetterStatus.DRAFT, LetterStatus.SUBMITTED):
            raise InvalidTransitionError(
                current="new",
                requested=str(status),
                valid_transitions=[LetterStatus.DRAFT.value, LetterStatus.SUBMITTED.value],
            )

        now = datetime.now(UTC)
        letter = Letter(
            id=generate_letter_id(),
            user_id=owner_id,
            title=title,
            status=status,
            created_at=now,
            updated_at=now,
            **fields,
        )
        await self._redis.store_letter(letter)

        logger.info("Letter created", letter_id=letter.id, owner_id=owner_id, status=status)
        return letter

    async def get_letter(self, letter_id: str, actor: UserProfile) -> Letter:
        """Fetch a letter the actor is allowed to see."""
        letter = await self._redis.get_letter(letter_id)
        if letter is None:
            raise NotFoundError("Letter", letter_id)
        ensure_can_access(letter, actor)
        return letter

    async def apply_transition(
        self,
        letter_id: str,
        requested_status: LetterStatus | str,
        actor: UserProfile,
        notes: str | None = None,
        assigned_reviewer_id: str | None = None,
        changes: dict[str, Any] | None = None,
        notify: bool = True,
    ) -> tuple[Letter, StatusHistoryEntry]:
        """
        Move a letter to ``requested_status``.

        Args:
            letter_id: The letter to transition.
            requested_status: Target status.
            actor: The authenticated caller performing the change.
            notes: Optional free-text note stored on the letter and history entry.
            assigned_reviewer_id: Optional reviewer to assign.
            changes: Extra letter fields to set in the same write (e.g. ai_draft).
            notify: Whether to email the letter owner about the change.

        Returns:
            The updated letter and the appended history entry.

        Raises:
            NotFoundError: The letter does not exist.
            AuthorizationError: The actor is neither staff nor the owner.
            InvalidTransitionError: The target is not reachable and the actor is not an admin.
        """
        requested = LetterStatus(requested_status)
        letter = await self.get_letter(letter_id, actor)
        current = letter.status

        if not can_transition(current, requested, actor):
            logger.info(
                "Status transition rejected",
                letter_id=letter_id,
                current_status=current,
                requested_status=requested,
                actor_id=actor.id,
            )
            raise InvalidTransitionError(
                current=current.value,
                requested=requested.value,
                valid_transitions=[s.value for s in valid_transitions(current)],
            )

        if actor.is_admin and requested not in ALLOWED_TRANSITIONS[current]:
            logger.warning(
                "Admin forced status transition outside the graph",
                letter_id=letter_id,
                current_status=current,
                requested_status=requested,
                actor_id=actor.id,
            )

        now = datetime.now(UTC)
        update: dict[str, Any] = dict(changes or {})
        update["status"] = requested
        update["updated_at"] = now
        if assigned_reviewer_id:
            update["assigned_reviewer_id"] = assigned_reviewer_id
        if notes:
            update["notes"] = notes
        if requested == LetterStatus.COMPLETED:
            update["sent_at"] = now

        updated = letter.model_copy(update=update)
        entry = StatusHistoryEntry(
            id=f"lsh_{ULID()}",
            letter_id=letter.id,
            old_status=current,
            new_status=requested,
            changed_by=actor.id,
            notes=notes,
            changed_at=now,
        )
        await self._redis.save_transition(updated, current, entry)

        logger.info(
            "Letter status updated",
            letter_id=letter_id,
            old_status=current,
            new_status=requested,
            actor_id=actor.id,
        )

        self._spawn(self._broadcast(updated, current, actor, now))
        if notify and self._dispatcher is not None:
            self._spawn(self._notify_owner(updated, current))

        return updated, entry

    async def history(self, letter_id: str, actor: UserProfile) -> list[StatusHistoryEntry]:
        """Return a letter's status timeline, oldest first."""
        await self.get_letter(letter_id, actor)
        return await self._redis.get_status_history(letter_id)

    async def letters_for_owner(self, actor: UserProfile) -> list[Letter]:
        """The actor's own letters, newest first."""
        return await self._redis.list_letters_for_user(actor.id)

    async def letters_requiring_action(self, actor: UserProfile) -> list[Letter]:
        """Letters waiting on a reviewer, oldest first. Staff only."""
        if not actor.is_staff:
            raise AuthorizationError("Admin or employee role required")
        return await self._redis.list_letters_by_status(ACTION_REQUIRED_STATUSES)

    # Best-effort side effects

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled side effects to finish (shutdown and tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._dispatcher is not None:
            await self._dispatcher.drain()

    async def _broadcast(
        self,
        letter: Letter,
        old_status: LetterStatus,
        actor: UserProfile,
        timestamp: datetime,
    ) -> None:
        try:
            await self._redis.publish_status_update(
                {
                    "event": "status_updated",
                    "letterId": letter.id,
                    "oldStatus": old_status.value,
                    "newStatus": letter.status.value,
                    "updatedBy": actor.id,
                    "timestamp": timestamp.isoformat(),
                }
            )
        except Exception as e:
            logger.warning("Status broadcast failed", letter_id=letter.id, error=str(e))

    async def _notify_owner(self, letter: Letter, old_status: LetterStatus) -> None:
        try:
            owner = await self._redis.get_profile(letter.user_id)
        except Exception as e:
            logger.warning("Owner lookup for notification failed", letter_id=letter.id, error=str(e))
            return

        if owner is None or not owner.email:
            logger.debug("No owner email, skipping notification", letter_id=letter.id)
            return

        self._dispatcher.fire(letter, old_status, letter.status, owner.email)
