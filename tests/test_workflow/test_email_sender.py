"""
Tests for the email delivery backends.
"""

import json

import httpx
import pytest
import respx

from src.shared.config import AppConfig
from src.shared.errors import UpstreamError
from src.workflow.email_sender import (
    MAILERSEND_API_URL,
    EmailMessage,
    MailerSendEmailSender,
    SimulatedEmailSender,
    build_email_sender,
)


@pytest.fixture
def message() -> EmailMessage:
    return EmailMessage(
        to="recipient@example.com",
        subject="Demand for payment",
        html="<p>Dear Sir</p>",
        text="Dear Sir",
    )


@pytest.fixture
def mailersend() -> MailerSendEmailSender:
    return MailerSendEmailSender(
        api_key="mlsn.test",
        from_email="noreply@example.com",
        from_name="Letters",
    )


class TestBuildEmailSender:
    def test_simulated_without_api_key(self) -> None:
        assert isinstance(build_email_sender(AppConfig()), SimulatedEmailSender)

    def test_mailersend_with_api_key(self) -> None:
        sender = build_email_sender(AppConfig(mailersend_api_key="mlsn.key"))
        assert isinstance(sender, MailerSendEmailSender)


class TestSimulatedEmailSender:
    async def test_records_message(self, message: EmailMessage) -> None:
        sender = SimulatedEmailSender("noreply@example.com", "Letters")

        result = await sender.send(message)

        assert result.simulated is True
        assert result.provider == "simulated"
        assert sender.sent == [message]


class TestMailerSendEmailSender:
    """Tests for the MailerSend backend against a mocked API."""

    @respx.mock
    async def test_posts_message(self, mailersend: MailerSendEmailSender, message: EmailMessage) -> None:
        """
        Given: MailerSend accepts the message
        When: send is called
        Then: The API receives sender, recipient, subject and bodies with the bearer key
        """
        route = respx.post(MAILERSEND_API_URL).mock(
            return_value=httpx.Response(202, headers={"X-Message-Id": "msg-123"})
        )

        result = await mailersend.send(message)

        assert route.called
        request = route.calls.last.request
        assert request.headers["Authorization"] == "Bearer mlsn.test"
        payload = json.loads(request.content)
        assert payload["from"] == {"email": "noreply@example.com", "name": "Letters"}
        assert payload["to"] == [{"email": "recipient@example.com"}]
        assert payload["subject"] == "Demand for payment"
        assert payload["html"] == "<p>Dear Sir</p>"
        assert payload["text"] == "Dear Sir"
        assert result.message_id == "msg-123"
        assert result.simulated is False

    @respx.mock
    async def test_sender_override(self, mailersend: MailerSendEmailSender, message: EmailMessage) -> None:
        route = respx.post(MAILERSEND_API_URL).mock(return_value=httpx.Response(202))
        message.from_email = "attorney@lawfirm.example"

        await mailersend.send(message)

        payload = json.loads(route.calls.last.request.content)
        assert payload["from"]["email"] == "attorney@lawfirm.example"

    @respx.mock
    async def test_rejection_raises_upstream_error(
        self, mailersend: MailerSendEmailSender, message: EmailMessage
    ) -> None:
        respx.post(MAILERSEND_API_URL).mock(return_value=httpx.Response(422, json={"message": "invalid"}))

        with pytest.raises(UpstreamError) as exc_info:
            await mailersend.send(message)

        assert exc_info.value.details == {"status": 422}

    @respx.mock
    async def test_network_error_raises_upstream_error(
        self, mailersend: MailerSendEmailSender, message: EmailMessage
    ) -> None:
        respx.post(MAILERSEND_API_URL).mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(UpstreamError):
            await mailersend.send(message)
