"""
FastAPI dependencies for dependency injection.

All long-lived components are built once from an AppConfig by
build_services() and attached to ``app.state.services``. Route handlers
reach them through the Annotated dependency aliases at the bottom of this
module.
"""

from dataclasses import dataclass
from typing import Annotated

import anthropic
import structlog
from fastapi import Depends, Request

from src.api.auth.identity_gateway import IdentityGateway
from src.drafting.generator import DraftGenerator
from src.shared.config import AppConfig
from src.shared.errors import AuthenticationError, AuthorizationError
from src.shared.models import UserProfile
from src.shared.redis_client import RedisClient
from src.workflow.coupons import CouponEngine
from src.workflow.email_sender import EmailSender, build_email_sender
from src.workflow.notifications import NotificationDispatcher
from src.workflow.status_engine import LetterStatusEngine

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """The application's long-lived components."""

    config: AppConfig
    redis: RedisClient
    identity: IdentityGateway
    email_sender: EmailSender
    notifications: NotificationDispatcher
    engine: LetterStatusEngine
    drafts: DraftGenerator
    coupons: CouponEngine

    async def shutdown(self) -> None:
        """Wait for background side effects, then close connections."""
        await self.engine.drain()
        await self.identity.close()
        await self.redis.close()


def build_services(
    config: AppConfig,
    redis: RedisClient | None = None,
    identity: IdentityGateway | None = None,
    email_sender: EmailSender | None = None,
    anthropic_client: anthropic.AsyncAnthropic | None = None,
) -> Services:
    """
    Wire all components from one configuration.

    Any component can be passed in to replace the default (tests do this).
    Nothing connects here; Redis and HTTP clients open lazily on first use.
    """
    redis = redis or RedisClient(config.redis_url)
    identity = identity or IdentityGateway(config, redis)
    email_sender = email_sender or build_email_sender(config)
    notifications = NotificationDispatcher(email_sender)
    engine = LetterStatusEngine(redis, notifications)

    logger.debug(
        "Services built",
        email_backend=type(email_sender).__name__,
        drafting_enabled=bool(config.anthropic_api_key),
    )

    return Services(
        config=config,
        redis=redis,
        identity=identity,
        email_sender=email_sender,
        notifications=notifications,
        engine=engine,
        drafts=DraftGenerator(config, engine, client=anthropic_client),
        coupons=CouponEngine(redis),
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_redis_client(request: Request) -> RedisClient:
    return get_services(request).redis


def get_status_engine(request: Request) -> LetterStatusEngine:
    return get_services(request).engine


def get_draft_generator(request: Request) -> DraftGenerator:
    return get_services(request).drafts


def get_coupon_engine(request: Request) -> CouponEngine:
    return get_services(request).coupons


def get_email_sender(request: Request) -> EmailSender:
    return get_services(request).email_sender


def get_caller(request: Request) -> UserProfile:
    """
    Get the authenticated caller set by AuthMiddleware.

    Raises AuthenticationError if the request was not authenticated.
    """
    caller = getattr(request.state, "caller", None)
    if caller is None:
        raise AuthenticationError("Missing Authorization header")
    return caller


def require_admin(caller: Annotated[UserProfile, Depends(get_caller)]) -> UserProfile:
    if not caller.is_admin:
        raise AuthorizationError("Admin access required")
    return caller


def require_staff(caller: Annotated[UserProfile, Depends(get_caller)]) -> UserProfile:
    if not caller.is_staff:
        raise AuthorizationError("Admin or employee role required")
    return caller


# Type aliases for dependency injection
ServicesDep = Annotated[Services, Depends(get_services)]
RedisClientDep = Annotated[RedisClient, Depends(get_redis_client)]
StatusEngineDep = Annotated[LetterStatusEngine, Depends(get_status_engine)]
DraftGeneratorDep = Annotated[DraftGenerator, Depends(get_draft_generator)]
CouponEngineDep = Annotated[CouponEngine, Depends(get_coupon_engine)]
EmailSenderDep = Annotated[EmailSender, Depends(get_email_sender)]
CallerDep = Annotated[UserProfile, Depends(get_caller)]
AdminDep = Annotated[UserProfile, Depends(require_admin)]
StaffDep = Annotated[UserProfile, Depends(require_staff)]
