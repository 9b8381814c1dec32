"""
Coupon storage: lookups and the atomic usage increment
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, or_
import logging
import uuid

from rental_orders.models.coupon import Coupon, CouponUsage
from rental_orders.core.exceptions import CouponExhaustedException
from rental_orders.schemas.coupon import CouponRedemption, CouponSnapshot

logger = logging.getLogger(__name__)

class CouponService:
    """
    Service for coupon reads and redemption
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, coupon_id: uuid.UUID) -> Optional[CouponSnapshot]:
        result = await self.db.execute(
            select(Coupon)
            .where(Coupon.id == coupon_id)
            .execution_options(populate_existing=True)
        )
        coupon = result.scalar_one_or_none()
        return CouponSnapshot.model_validate(coupon) if coupon else None

    async def get_by_code(self, code: str) -> Optional[CouponSnapshot]:
        """
        Get coupon by code, case-insensitively
        """
        result = await self.db.execute(
            select(Coupon)
            .where(Coupon.code == code.strip().upper())
            .execution_options(populate_existing=True)
        )
        coupon = result.scalar_one_or_none()
        return CouponSnapshot.model_validate(coupon) if coupon else None

    async def redeem(self, redemption: CouponRedemption, commit: bool = True) -> CouponUsage:
        """
        Increment used_count and record the usage

        The increment is a single conditional UPDATE so two concurrent
        checkouts cannot both take the last use of a limited coupon.

        Args:
            redemption: Usage increment owed by a placed order
            commit: Commit immediately; pass False to join a larger transaction

        Returns:
            The recorded usage row

        Raises:
            CouponExhaustedException: If the coupon is inactive or used up
        """
        result = await self.db.execute(
            update(Coupon)
            .where(
                Coupon.id == redemption.coupon_id,
                Coupon.is_active.is_(True),
                or_(
                    Coupon.usage_limit.is_(None),
                    Coupon.used_count < Coupon.usage_limit
                )
            )
            .values(used_count=Coupon.used_count + 1)
            .execution_options(synchronize_session=False)
        )

        if result.rowcount == 0:
            logger.info(f"Redemption of coupon {redemption.code} refused for order {redemption.order_id}")
            raise CouponExhaustedException(redemption.code)

        usage = CouponUsage(
            coupon_id=redemption.coupon_id,
            order_id=redemption.order_id,
            user_id=redemption.user_id,
            discount_amount=redemption.discount_amount
        )
        self.db.add(usage)

        if commit:
            await self.db.commit()
        else:
            await self.db.flush()

        logger.info(f"Coupon {redemption.code} redeemed by order {redemption.order_id}")
        return usage
