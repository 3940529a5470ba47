"""
Application configuration.

A single AppConfig is built once at startup (normally from the environment)
and handed to every component that needs settings or secrets.
"""

import os
from dataclasses import dataclass

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_DRAFT_MAX_TOKENS = 4096
DEFAULT_HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class AppConfig:
    """Settings for the letter service."""

    redis_url: str = DEFAULT_REDIS_URL

    # Hosted identity service (Supabase auth)
    supabase_url: str | None = None
    supabase_anon_key: str | None = None

    # Draft generation
    anthropic_api_key: str | None = None
    claude_model: str = DEFAULT_CLAUDE_MODEL
    draft_max_tokens: int = DEFAULT_DRAFT_MAX_TOKENS

    # Email delivery; simulated when no MailerSend key is set
    mailersend_api_key: str | None = None
    email_from_address: str = "noreply@talktomylawyer.com"
    email_from_name: str = "Talk to My Lawyer"

    cors_allow_origin: str = "*"
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from environment variables."""
        return cls(
            redis_url=os.getenv("REDIS_URL", DEFAULT_REDIS_URL),
            supabase_url=os.getenv("SUPABASE_URL") or os.getenv("VITE_SUPABASE_URL"),
            supabase_anon_key=os.getenv("SUPABASE_ANON_KEY") or os.getenv("VITE_SUPABASE_ANON_KEY"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
            draft_max_tokens=int(os.getenv("DRAFT_MAX_TOKENS", str(DEFAULT_DRAFT_MAX_TOKENS))),
            mailersend_api_key=os.getenv("MAILERSEND_API_KEY") or None,
            email_from_address=os.getenv("EMAIL_FROM_ADDRESS", "noreply@talktomylawyer.com"),
            email_from_name=os.getenv("EMAIL_FROM_NAME", "Talk to My Lawyer"),
            cors_allow_origin=os.getenv("CORS_ALLOW_ORIGIN", "*"),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", str(DEFAULT_HTTP_TIMEOUT))),
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ("production", "prod")
