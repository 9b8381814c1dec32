from datetime import datetime, timezone
from decimal import Decimal
import uuid

import pytest
from sqlalchemy import select

from rental_orders.core.exceptions import (
    CouponExhaustedException, NotFoundException, StaleOrderException, ValidationException
)
from rental_orders.models import CouponUsage, OrderStatusHistory
from rental_orders.models.order import OrderStatus, StatusField
from rental_orders.schemas.coupon import CouponRedemption
from rental_orders.schemas.order import RentalWindow
from rental_orders.services.coupon_service import CouponService
from rental_orders.services.delivery_queue import assign_partner
from rental_orders.services.order_service import OrderService
from rental_orders.services.order_status import OrderStatusMachine

WINDOW = RentalWindow(
    start_date=datetime(2024, 6, 8, 10, tzinfo=timezone.utc),
    end_date=datetime(2024, 6, 11, 10, tzinfo=timezone.utc),
)


async def place(db_session, make_item, **kwargs):
    return await OrderService(db_session).place_order(
        items=[make_item(quantity=2)],
        rental_window=WINDOW,
        delivery_charge=Decimal("100"),
        profile_id="user-1",
        customer_email="asha@example.com",
        delivery_partner_id="partner-1",
        **kwargs
    )


async def test_coupon_lookup_is_case_insensitive(db_session, add_coupon):
    coupon_id = await add_coupon(code="SAVE20")

    coupon = await CouponService(db_session).get_by_code(" save20 ")

    assert coupon.id == coupon_id
    assert coupon.valid_from.tzinfo is not None


async def test_redeem_stops_at_usage_limit(db_session, add_coupon):
    coupon_id = await add_coupon(usage_limit=1)
    service = CouponService(db_session)

    def redemption():
        return CouponRedemption(
            coupon_id=coupon_id, code="SAVE20", order_id=uuid.uuid4(), discount_amount=Decimal("300")
        )

    await service.redeem(redemption())
    with pytest.raises(CouponExhaustedException):
        await service.redeem(redemption())

    coupon = await service.get(coupon_id)
    assert coupon.used_count == 1


async def test_redeem_refuses_inactive_coupon(db_session, add_coupon):
    coupon_id = await add_coupon(is_active=False)

    with pytest.raises(CouponExhaustedException):
        await CouponService(db_session).redeem(CouponRedemption(
            coupon_id=coupon_id, code="SAVE20", order_id=uuid.uuid4(), discount_amount=Decimal("0")
        ))


async def test_place_order_prices_and_redeems_coupon(db_session, make_item, add_coupon):
    coupon_id = await add_coupon(usage_limit=10)

    order = await place(db_session, make_item, coupon_code="save20")

    assert order.order_status == OrderStatus.PENDING
    assert order.rental_days == 3
    assert order.subtotal == Decimal("2000")
    assert order.discount_amount == Decimal("300")
    assert order.total_amount == Decimal("1800")
    assert order.applied_coupon_code == "SAVE20"
    assert order.version == 1
    assert order.items[0].quantity == 2

    coupon = await CouponService(db_session).get(coupon_id)
    assert coupon.used_count == 1

    usages = (await db_session.execute(select(CouponUsage))).scalars().all()
    assert [u.order_id for u in usages] == [order.id]


async def test_place_order_rejects_ineligible_coupon(db_session, make_item, add_coupon):
    await add_coupon(minimum_amount=Decimal("5000"))

    with pytest.raises(ValidationException) as exc_info:
        await place(db_session, make_item, coupon_code="SAVE20")
    assert exc_info.value.error_code == "MINIMUM_AMOUNT_NOT_MET"


async def test_save_transition_bumps_version_and_writes_history(db_session, make_item):
    service = OrderService(db_session)
    order = await place(db_session, make_item)

    outcome = OrderStatusMachine().transition(order, actor="admin-1", order_status="confirmed")
    saved = await service.save_transition(order, outcome.order, outcome.records)

    assert saved.version == 2
    stored = await service.get(order.id)
    assert stored.order_status == OrderStatus.CONFIRMED
    assert stored.version == 2

    history = (await db_session.execute(
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order.id)
        .order_by(OrderStatusHistory.created_at)
    )).scalars().all()
    assert [(h.previous_status, h.status) for h in history] == [(None, "pending"), ("pending", "confirmed")]
    assert history[-1].updated_by == "admin-1"


async def test_stale_write_is_refused(db_session, make_item):
    service = OrderService(db_session)
    order = await place(db_session, make_item)

    first = OrderStatusMachine().transition(order, actor="admin-1", order_status="confirmed")
    await service.save_transition(order, first.order, first.records)

    second = OrderStatusMachine().transition(order, actor="admin-2", order_status="rejected")
    with pytest.raises(StaleOrderException):
        await service.save_transition(order, second.order, second.records)

    stored = await service.get(order.id)
    assert stored.order_status == OrderStatus.CONFIRMED


async def test_list_for_partner(db_session, make_item):
    mine = await place(db_session, make_item)
    await OrderService(db_session).place_order(
        items=[make_item()],
        rental_window=WINDOW,
        delivery_charge=Decimal("0"),
        delivery_partner_id="partner-2",
    )

    orders = await OrderService(db_session).list_for_partner("partner-1")

    assert [o.id for o in orders] == [mine.id]


async def test_missing_order(db_session):
    with pytest.raises(NotFoundException):
        await OrderService(db_session).get(uuid.uuid4())


async def test_cancelling_order_keeps_coupon_used(db_session, make_item, add_coupon):
    coupon_id = await add_coupon(usage_limit=10)
    service = OrderService(db_session)
    order = await place(db_session, make_item, coupon_code="SAVE20")

    outcome = OrderStatusMachine().transition(order, actor="admin-1", order_status="cancelled")
    saved = await service.save_transition(order, outcome.order, outcome.records)

    assert saved.order_status == OrderStatus.CANCELLED
    coupon = await CouponService(db_session).get(coupon_id)
    assert coupon.used_count == 1


async def test_save_transition_persists_partner_assignment(db_session, make_item):
    service = OrderService(db_session)
    order = await place(db_session, make_item)

    assigned, record = assign_partner(order, "partner-9", actor="admin-1")
    await service.save_transition(order, assigned, [record])

    stored = await service.get(order.id)
    assert stored.delivery_partner_id == "partner-9"
    assert [o.id for o in await service.list_for_partner("partner-9")] == [order.id]

    history = (await db_session.execute(
        select(OrderStatusHistory).where(OrderStatusHistory.field == StatusField.DELIVERY_PARTNER)
    )).scalars().all()
    assert [(h.previous_status, h.status) for h in history] == [("partner-1", "partner-9")]
