"""
Coupon API routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
import uuid
import logging

from rental_orders.core.database import get_db
from rental_orders.core.exceptions import CouponNotFoundException
from rental_orders.schemas.coupon import CouponRedemption
from rental_orders.services.coupon_engine import CouponEngine, context_from_lines
from rental_orders.services.coupon_service import CouponService
from rental_orders.utils.helpers import utcnow
from .schemas import (
    CouponValidateRequest,
    CouponValidateResponse,
    CouponUseRequest,
    CouponUseResponse,
    ValidatedCoupon
)

logger = logging.getLogger(__name__)

router = APIRouter()

@router.post(
    "/validate",
    response_model=CouponValidateResponse,
    summary="Validate coupon",
    description="Check a coupon code against a cart and preview its discount"
)
async def validate_coupon(
    request: CouponValidateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Validate coupon code"""
    coupon = await CouponService(db).get_by_code(request.code)
    if coupon is None:
        raise CouponNotFoundException()

    result = CouponEngine().evaluate(
        coupon, context_from_lines(request.amount, request.items, utcnow())
    )

    if not result.eligible:
        return CouponValidateResponse(
            valid=False,
            error=result.eligibility.message,
            rejection=result.eligibility.rejection,
            shortfall=result.eligibility.shortfall
        )

    return CouponValidateResponse(
        valid=True,
        coupon=ValidatedCoupon(
            id=coupon.id,
            code=coupon.code,
            title=coupon.title,
            discount_type=coupon.discount_type,
            discount_value=coupon.discount_value,
            discount_amount=result.discount_amount,
            minimum_amount=coupon.minimum_amount,
            maximum_discount=coupon.maximum_discount
        )
    )

@router.post(
    "/{coupon_id}/use",
    response_model=CouponUseResponse,
    summary="Use coupon",
    description="Record one redemption of a coupon by an order"
)
async def use_coupon(
    coupon_id: uuid.UUID,
    request: CouponUseRequest,
    db: AsyncSession = Depends(get_db)
):
    """Atomically increment coupon usage"""
    service = CouponService(db)
    coupon = await service.get(coupon_id)
    if coupon is None:
        raise CouponNotFoundException("Coupon not found")

    await service.redeem(CouponRedemption(
        coupon_id=coupon.id,
        code=coupon.code,
        order_id=request.order_id,
        user_id=request.user_id,
        discount_amount=request.discount_amount
    ))

    updated = await service.get(coupon_id)
    return CouponUseResponse(
        success=True,
        coupon_id=updated.id,
        code=updated.code,
        used_count=updated.used_count
    )
