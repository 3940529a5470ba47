"""
Email delivery backends.

SimulatedEmailSender only logs the message and is the default. When a
MailerSend API key is configured, MailerSendEmailSender posts the message to
the MailerSend HTTP API.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from src.shared.config import AppConfig
from src.shared.errors import UpstreamError

logger = structlog.get_logger(__name__)

MAILERSEND_API_URL = "https://api.mailersend.com/v1/email"


@dataclass
class EmailMessage:
    """An outgoing email."""

    to: str
    subject: str
    html: str | None = None
    text: str | None = None
    from_email: str | None = None
    from_name: str | None = None


@dataclass
class SendResult:
    """Outcome of a send call."""

    provider: str
    message_id: str | None = None
    simulated: bool = False


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> SendResult: ...


class SimulatedEmailSender:
    """Logs outgoing email instead of delivering it."""

    def __init__(self, from_email: str, from_name: str) -> None:
        self._from_email = from_email
        self._from_name = from_name
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> SendResult:
        self.sent.append(message)
        logger.info(
            "Simulating email send",
            to=message.to,
            sender=message.from_email or self._from_email,
            subject=message.subject,
            body_length=len(message.html or message.text or ""),
        )
        return SendResult(provider="simulated", simulated=True)


class MailerSendEmailSender:
    """
    Sends email through the MailerSend API.

    Raises UpstreamError when the provider rejects the message or cannot be
    reached; callers decide whether that is fatal.
    """

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        timeout: float = 10.0,
        api_url: str = MAILERSEND_API_URL,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._timeout = timeout
        self._api_url = api_url

    async def send(self, message: EmailMessage) -> SendResult:
        payload = {
            "from": {
                "email": message.from_email or self._from_email,
                "name": message.from_name or self._from_name,
            },
            "to": [{"email": message.to}],
            "subject": message.subject,
        }
        if message.html:
            payload["html"] = message.html
        if message.text:
            payload["text"] = message.text

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.HTTPError as exc:
            logger.error("Email provider unreachable", to=message.to, error=str(exc))
            raise UpstreamError("Failed to send email") from exc

        if resp.status_code >= 300:
            logger.error(
                "Email provider rejected message",
                to=message.to,
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise UpstreamError("Failed to send email", details={"status": resp.status_code})

        message_id = resp.headers.get("X-Message-Id")
        logger.info("Email sent", to=message.to, provider="mailersend", message_id=message_id)
        return SendResult(provider="mailersend", message_id=message_id)


def build_email_sender(config: AppConfig) -> EmailSender:
    """Pick the email backend for the given configuration."""
    if config.mailersend_api_key:
        return MailerSendEmailSender(
            api_key=config.mailersend_api_key,
            from_email=config.email_from_address,
            from_name=config.email_from_name,
            timeout=config.http_timeout,
        )
    return SimulatedEmailSender(
        from_email=config.email_from_address,
        from_name=config.email_from_name,
    )
