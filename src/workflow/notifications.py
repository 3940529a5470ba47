"""
Status-change notification emails.

Messages are composed from a fixed per-status template table and handed to
the configured email sender as a background task. All errors are caught and
logged; a notification never blocks or fails the transition that triggered it.
"""

import asyncio
import html

import structlog

from src.shared.models import Letter, LetterStatus
from src.workflow.email_sender import EmailMessage, EmailSender

logger = structlog.get_logger(__name__)

STATUS_MESSAGES = {
    LetterStatus.SUBMITTED: "Your letter has been submitted and is queued for review.",
    LetterStatus.IN_REVIEW: "Your letter is currently being reviewed by our legal team.",
    LetterStatus.APPROVED: "Great news! Your letter has been approved and is ready for download.",
    LetterStatus.COMPLETED: "Your letter has been successfully delivered.",
    LetterStatus.CANCELLED: "Your letter request has been cancelled.",
}

STATUS_ACTIONS = {
    LetterStatus.SUBMITTED: "We will notify you once the review begins.",
    LetterStatus.IN_REVIEW: (
        "Our attorneys are carefully reviewing your letter to ensure it meets "
        "all legal requirements."
    ),
    LetterStatus.APPROVED: "You can now download your letter and send it to the recipient.",
    LetterStatus.COMPLETED: "Your legal matter is progressing as planned.",
    LetterStatus.CANCELLED: "If this was done in error, please contact our support team.",
}

DEFAULT_MESSAGE = "Your letter status has been updated."
DEFAULT_ACTION = "Please check your dashboard for more details."


def format_status(status: LetterStatus | str) -> str:
    """Render a status for humans, e.g. ``in_review`` -> ``IN REVIEW``."""
    return str(status).replace("_", " ").upper()


def compose_status_email(
    letter: Letter,
    old_status: LetterStatus | str,
    new_status: LetterStatus | str,
    recipient_email: str,
) -> EmailMessage:
    """Build the status-update email for a letter owner."""
    message = STATUS_MESSAGES.get(new_status, DEFAULT_MESSAGE)
    action = STATUS_ACTIONS.get(new_status, DEFAULT_ACTION)
    title = html.escape(letter.title)

    body = f"""
<h2>Letter Status Update</h2>

<p>Dear Valued Client,</p>

<p>The status of your letter "<strong>{title}</strong>" has been updated.</p>

<div style="background-color: #f8f9fa; padding: 15px; border-radius: 5px; margin: 20px 0;">
  <p><strong>Previous Status:</strong> {format_status(old_status)}</p>
  <p><strong>Current Status:</strong> {format_status(new_status)}</p>
</div>

<p>{message}</p>

<p>{action}</p>

<p>You can view your letter and track its progress by logging into your account.</p>

<hr>

<p><small>This is an automated notification. If you have any questions, please contact our support team.</small></p>
"""
    text = (
        f"The status of your letter \"{letter.title}\" has changed from "
        f"{format_status(old_status)} to {format_status(new_status)}.\n\n"
        f"{message}\n{action}"
    )
    return EmailMessage(
        to=recipient_email,
        subject=f"Letter Status Update: {letter.title}",
        html=body,
        text=text,
    )


class NotificationDispatcher:
    """Sends status-change emails without ever raising into the caller."""

    def __init__(self, sender: EmailSender) -> None:
        self._sender = sender
        self._pending: set[asyncio.Task] = set()

    async def dispatch(
        self,
        letter: Letter,
        old_status: LetterStatus | str,
        new_status: LetterStatus | str,
        recipient_email: str,
    ) -> bool:
        """
        Compose and send one notification.

        Returns:
            True if the sender accepted the message, False if it failed.
        """
        try:
            email = compose_status_email(letter, old_status, new_status, recipient_email)
            await self._sender.send(email)
        except Exception as e:
            logger.error(
                "Failed to send notification email",
                letter_id=letter.id,
                new_status=str(new_status),
                to=recipient_email,
                error=str(e),
            )
            return False

        logger.info(
            "Status notification sent",
            letter_id=letter.id,
            old_status=str(old_status),
            new_status=str(new_status),
        )
        return True

    def fire(
        self,
        letter: Letter,
        old_status: LetterStatus | str,
        new_status: LetterStatus | str,
        recipient_email: str,
    ) -> None:
        """Schedule a notification as a background task (fire-and-forget)."""
        task = asyncio.create_task(
            self.dispatch(letter, old_status, new_status, recipient_email)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for scheduled notifications to finish."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
