"""
Tests for AppConfig.
"""

import pytest

from src.shared.config import DEFAULT_CLAUDE_MODEL, DEFAULT_REDIS_URL, AppConfig
from src.workflow.email_sender import MailerSendEmailSender, SimulatedEmailSender, build_email_sender


class TestFromEnv:
    def test_defaults(self, monkeypatch) -> None:
        for name in ("REDIS_URL", "SUPABASE_URL", "VITE_SUPABASE_URL", "ANTHROPIC_API_KEY", "MAILERSEND_API_KEY"):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.redis_url == DEFAULT_REDIS_URL
        assert config.claude_model == DEFAULT_CLAUDE_MODEL
        assert config.anthropic_api_key is None
        assert config.supabase_url is None
        assert config.is_production is False

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
        monkeypatch.setenv("SUPABASE_URL", "https://proj.supabase.co")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-xyz")
        monkeypatch.setenv("DRAFT_MAX_TOKENS", "2048")
        monkeypatch.setenv("ENVIRONMENT", "Production")

        config = AppConfig.from_env()

        assert config.redis_url == "redis://cache:6379/2"
        assert config.supabase_url == "https://proj.supabase.co"
        assert config.anthropic_api_key == "sk-ant-xyz"
        assert config.draft_max_tokens == 2048
        assert config.is_production is True

    def test_vite_prefixed_fallback(self, monkeypatch) -> None:
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.setenv("VITE_SUPABASE_URL", "https://vite.supabase.co")

        assert AppConfig.from_env().supabase_url == "https://vite.supabase.co"

    def test_empty_key_is_unset(self, monkeypatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "")

        assert AppConfig.from_env().anthropic_api_key is None


class TestEmailBackendSelection:
    @pytest.mark.parametrize(
        ("api_key", "expected"),
        [(None, SimulatedEmailSender), ("mlsn.key", MailerSendEmailSender)],
    )
    def test_backend(self, api_key, expected) -> None:
        assert isinstance(build_email_sender(AppConfig(mailersend_api_key=api_key)), expected)
