"""
Coupon redemption and discount code management.
"""

import structlog
from fastapi import APIRouter

from src.api.dependencies import CallerDep, CouponEngineDep, StaffDep
from src.api.schemas.common import Envelope
from src.api.schemas.coupon import (
    ApplyCouponRequest,
    ApplyCouponResponse,
    CreateDiscountCodeRequest,
    DiscountCodeResponse,
    SetDiscountCodeStatusRequest,
)

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/apply-coupon",
    response_model=Envelope[ApplyCouponResponse],
    responses={
        400: {"description": "Missing fields or non-positive amount"},
        403: {"description": "Applying a coupon for another user"},
        404: {"description": "Invalid or inactive coupon code"},
    },
)
async def apply_coupon(
    request: ApplyCouponRequest,
    caller: CallerDep,
    coupons: CouponEngineDep,
) -> Envelope[ApplyCouponResponse]:
    """Redeem a coupon and create the discounted subscription."""
    redemption = await coupons.apply_coupon(
        request.coupon_code,
        request.user_id,
        request.subscription_type,
        request.original_amount,
        caller,
    )
    return Envelope(
        data=ApplyCouponResponse.from_redemption(redemption),
        message="Coupon applied successfully",
    )


@router.post("/discount-codes", response_model=Envelope[DiscountCodeResponse])
async def create_discount_code(
    request: CreateDiscountCodeRequest,
    caller: StaffDep,
    coupons: CouponEngineDep,
) -> Envelope[DiscountCodeResponse]:
    """Create a discount code. Employees create codes for themselves."""
    discount_code = await coupons.create_code(
        request.code,
        request.discount_percentage,
        request.employee_id or caller.id,
        caller,
    )
    return Envelope(data=DiscountCodeResponse.from_code(discount_code), message="Discount code created")


@router.get("/discount-codes", response_model=Envelope[list[DiscountCodeResponse]])
async def list_discount_codes(
    caller: StaffDep,
    coupons: CouponEngineDep,
) -> Envelope[list[DiscountCodeResponse]]:
    codes = await coupons.list_codes(caller)
    return Envelope(data=[DiscountCodeResponse.from_code(code) for code in codes])


@router.post("/discount-codes/{code}/status", response_model=Envelope[DiscountCodeResponse])
async def set_discount_code_status(
    code: str,
    request: SetDiscountCodeStatusRequest,
    caller: StaffDep,
    coupons: CouponEngineDep,
) -> Envelope[DiscountCodeResponse]:
    """Activate or deactivate a discount code."""
    discount_code = await coupons.set_code_active(code, request.is_active, caller)
    return Envelope(data=DiscountCodeResponse.from_code(discount_code))
