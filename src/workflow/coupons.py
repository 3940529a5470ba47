"""
Coupon redemption and employee referral commission.

A discount code belongs to the employee who referred the customer. Redeeming
it creates the customer's subscription at the discounted price and credits
the employee with one point and a commission of 5% of the original (gross)
amount.

Amounts are Decimal, quantized to cents with half-up rounding. The final
amount is derived by subtraction so that discount + final == original holds
exactly for every percentage.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

import structlog
from ulid import ULID

from src.shared.errors import AuthorizationError, NotFoundError, ValidationError
from src.shared.models import (
    DiscountCode,
    DiscountUsageRecord,
    Subscription,
    UserProfile,
    UserRole,
)
from src.shared.redis_client import RedisClient

logger = structlog.get_logger(__name__)

COMMISSION_PERCENTAGE = Decimal("5")
CENTS = Decimal("0.01")

# Plan identifiers with a fixed letter allowance; any other plan gets the default
PLAN_LETTER_ALLOWANCE = {
    "one_letter_299": 1,
    "four_monthly_299": 4,
}
DEFAULT_LETTER_ALLOWANCE = 8


@dataclass(frozen=True)
class DiscountBreakdown:
    """Money split for one redemption."""

    original_amount: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    commission_amount: Decimal


@dataclass(frozen=True)
class CouponRedemption:
    """Result of a successful apply_coupon call."""

    subscription: Subscription
    usage: DiscountUsageRecord
    breakdown: DiscountBreakdown
    usage_count: int


def to_money(value: Decimal | float | int | str) -> Decimal:
    """Convert to a Decimal rounded to cents (half-up)."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        # Raises InvalidOperation when the cents exceed the context precision
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError(f"Invalid amount: {value!r}") from exc


def calculate_discount(original_amount: Decimal, discount_percentage: Decimal) -> DiscountBreakdown:
    """
    Split an amount into discount, final price and employee commission.

    Commission is computed on the original amount, not the discounted one.
    """
    original = to_money(original_amount)
    pct = Decimal(discount_percentage)
    discount = to_money(original * pct / 100)
    return DiscountBreakdown(
        original_amount=original,
        discount_percentage=pct,
        discount_amount=discount,
        final_amount=original - discount,
        commission_amount=to_money(original * COMMISSION_PERCENTAGE / 100),
    )


def letters_allowed(plan_type: str) -> int:
    return PLAN_LETTER_ALLOWANCE.get(plan_type, DEFAULT_LETTER_ALLOWANCE)


class CouponEngine:
    """Validates coupon codes and records redemptions."""

    def __init__(self, redis: RedisClient) -> None:
        self._redis = redis

    async def apply_coupon(
        self,
        code: str,
        user_id: str,
        subscription_type: str,
        original_amount: Decimal | float | str,
        actor: UserProfile,
    ) -> CouponRedemption:
        """
        Redeem ``code`` for ``user_id`` on a plan costing ``original_amount``.

        The subscription, the usage record and the code's usage counter are
        written together. The employee credit and the user's subscription
        status are updated afterwards on a best-effort basis.

        Raises:
            AuthorizationError: actor is neither the user nor an admin.
            ValidationError: a field is missing or the amount is not positive.
            NotFoundError: no active code matches ``code`` exactly.
        """
        if user_id != actor.id and not actor.is_admin:
            logger.warning("Coupon applied for another user", actor_id=actor.id, user_id=user_id)
            raise AuthorizationError("Cannot apply a coupon for another user")

        if not (code and user_id and subscription_type) or original_amount is None:
            raise ValidationError("Missing required fields")

        amount = to_money(original_amount)
        if amount <= 0:
            raise ValidationError("Original amount must be greater than zero")

        discount_code = await self._redis.get_discount_code(code)
        if discount_code is None or not discount_code.is_active:
            logger.info("Coupon rejected", code=code, user_id=user_id)
            raise NotFoundError("Discount code", code)

        breakdown = calculate_discount(amount, discount_code.discount_percentage)
        now = datetime.now(UTC)

        subscription = Subscription(
            id=f"sub_{ULID()}",
            user_id=user_id,
            plan_type=subscription_type,
            amount=breakdown.final_amount,
            original_amount=breakdown.original_amount,
            discount_applied=breakdown.discount_amount,
            discount_code_id=discount_code.id,
            coupon_code=discount_code.code,
            employee_id=discount_code.employee_id,
            status="active",
            letters_allowed=letters_allowed(subscription_type),
            created_at=now,
        )
        usage = DiscountUsageRecord(
            id=f"du_{ULID()}",
            discount_code_id=discount_code.id,
            code=discount_code.code,
            user_id=user_id,
            employee_id=discount_code.employee_id,
            subscription_amount=breakdown.original_amount,
            discount_amount=breakdown.discount_amount,
            commission_amount=breakdown.commission_amount,
            used_at=now,
        )
        usage_count = await self._redis.record_redemption(subscription, usage)

        logger.info(
            "Coupon applied",
            code=discount_code.code,
            user_id=user_id,
            employee_id=discount_code.employee_id,
            subscription_id=subscription.id,
            final_amount=str(breakdown.final_amount),
            usage_count=usage_count,
        )

        await self._credit_employee(discount_code, breakdown.commission_amount)
        await self._activate_subscription(user_id)

        return CouponRedemption(
            subscription=subscription,
            usage=usage,
            breakdown=breakdown,
            usage_count=usage_count,
        )

    async def _credit_employee(self, discount_code: DiscountCode, commission: Decimal) -> None:
        try:
            credited = await self._redis.credit_referral(discount_code.employee_id, commission)
        except Exception as e:
            logger.warning(
                "Failed to update employee points",
                employee_id=discount_code.employee_id,
                error=str(e),
            )
            return
        if not credited:
            logger.warning("Referring employee has no profile", employee_id=discount_code.employee_id)

    async def _activate_subscription(self, user_id: str) -> None:
        try:
            await self._redis.set_subscription_status(user_id, "active")
        except Exception as e:
            logger.warning("Failed to update subscription status", user_id=user_id, error=str(e))

    # Code management

    async def create_code(
        self,
        code: str,
        discount_percentage: Decimal | float | str,
        employee_id: str,
        actor: UserProfile,
    ) -> DiscountCode:
        """Create a discount code. Employees may only create codes for themselves."""
        if not actor.is_admin and not (actor.role == UserRole.EMPLOYEE and actor.id == employee_id):
            raise AuthorizationError("Only admins or the owning employee can create discount codes")

        code = (code or "").strip()
        if not code:
            raise ValidationError("Discount code is required")

        try:
            pct = Decimal(str(discount_percentage))
        except InvalidOperation as exc:
            raise ValidationError("Discount percentage must be a number") from exc
        if not Decimal(0) <= pct <= Decimal(100):
            raise ValidationError("Discount percentage must be between 0 and 100")

        discount_code = DiscountCode(
            id=f"dc_{ULID()}",
            code=code,
            discount_percentage=pct,
            employee_id=employee_id,
            created_at=datetime.now(UTC),
        )
        if not await self._redis.create_discount_code(discount_code):
            raise ValidationError(f"Discount code already exists: {code}")

        logger.info("Discount code created", code=code, employee_id=employee_id, percentage=str(pct))
        return discount_code

    async def list_codes(self, actor: UserProfile) -> list[DiscountCode]:
        """Admins see every code; employees see their own."""
        if actor.is_admin:
            return await self._redis.list_discount_codes()
        if actor.role == UserRole.EMPLOYEE:
            return await self._redis.list_discount_codes(employee_id=actor.id)
        raise AuthorizationError("Admin or employee role required")

    async def set_code_active(self, code: str, active: bool, actor: UserProfile) -> DiscountCode:
        discount_code = await self._redis.get_discount_code(code)
        if discount_code is None:
            raise NotFoundError("Discount code", code)
        if not actor.is_admin and discount_code.employee_id != actor.id:
            raise AuthorizationError("Cannot modify another employee's discount code")

        await self._redis.set_discount_code_active(code, active)
        logger.info("Discount code status changed", code=code, is_active=active, actor_id=actor.id)
        return discount_code.model_copy(update={"is_active": active})
