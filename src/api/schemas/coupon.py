"""
Pydantic schemas for coupon redemption and discount code management.

Money goes over the wire as JSON numbers; it is handled as Decimal internally.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from src.api.schemas.common import ApiModel
from src.shared.models import DiscountCode
from src.workflow.coupons import CouponRedemption


class ApplyCouponRequest(ApiModel):
    """Request body for POST /api/v1/apply-coupon."""

    coupon_code: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    subscription_type: str = Field(..., min_length=1)
    original_amount: Decimal


class ApplyCouponResponse(ApiModel):
    subscription_id: str
    original_amount: float
    discount_amount: float
    final_amount: float
    discount_percentage: float
    commission_amount: float
    letters_allowed: int

    @classmethod
    def from_redemption(cls, redemption: CouponRedemption) -> "ApplyCouponResponse":
        breakdown = redemption.breakdown
        return cls(
            subscription_id=redemption.subscription.id,
            original_amount=float(breakdown.original_amount),
            discount_amount=float(breakdown.discount_amount),
            final_amount=float(breakdown.final_amount),
            discount_percentage=float(breakdown.discount_percentage),
            commission_amount=float(breakdown.commission_amount),
            letters_allowed=redemption.subscription.letters_allowed,
        )


class CreateDiscountCodeRequest(ApiModel):
    """Request body for POST /api/v1/discount-codes."""

    code: str = Field(..., min_length=1, max_length=64)
    discount_percentage: Decimal = Field(..., ge=0, le=100)
    employee_id: str | None = Field(default=None, description="Defaults to the caller")


class SetDiscountCodeStatusRequest(ApiModel):
    is_active: bool


class DiscountCodeResponse(ApiModel):
    id: str
    code: str
    discount_percentage: float
    employee_id: str
    is_active: bool
    usage_count: int
    created_at: datetime | None = None

    @classmethod
    def from_code(cls, discount_code: DiscountCode) -> "DiscountCodeResponse":
        return cls(
            id=discount_code.id,
            code=discount_code.code,
            discount_percentage=float(discount_code.discount_percentage),
            employee_id=discount_code.employee_id,
            is_active=discount_code.is_active,
            usage_count=discount_code.usage_count,
            created_at=discount_code.created_at,
        )
