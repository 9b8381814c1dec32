from decimal import Decimal

from rental_orders.main import app
from rental_orders.services.order_status import OrderStatusMachine
from rental_orders.services.state_machine import STRICT_POLICY
from rental_orders.utils.dependencies import get_admin_status_machine

ITEMS = [
    {
        "product_id": "prod-1",
        "category_id": "cat-ethnic",
        "vendor_id": "vendor-1",
        "title": "Silk Sherwani",
        "selected_size": "M",
        "quantity": 2,
        "unit_price": "1000",
    }
]

ORDER = {
    "items": ITEMS,
    "rental_start_date": "2024-06-08T10:00:00Z",
    "rental_end_date": "2024-06-09T10:00:00Z",
    "delivery_charge": "100",
    "profile_id": "user-1",
    "customer_name": "Asha",
    "customer_email": "asha@example.com",
    "delivery_partner_id": "partner-1",
}


async def place_order(client, **overrides):
    response = await client.post("/api/v1/orders/", json={**ORDER, **overrides})
    assert response.status_code == 201, response.text
    return response.json()


async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_validate_coupon(client, add_coupon):
    await add_coupon()

    response = await client.post(
        "/api/v1/coupons/validate", json={"code": "save20", "amount": "2000", "items": []}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["coupon"]["code"] == "SAVE20"
    assert Decimal(data["coupon"]["discount_amount"]) == Decimal("300")


async def test_validate_coupon_below_minimum(client, add_coupon):
    await add_coupon()

    response = await client.post("/api/v1/coupons/validate", json={"code": "SAVE20", "amount": "400"})

    data = response.json()
    assert data["valid"] is False
    assert data["rejection"] == "minimum_amount_not_met"
    assert Decimal(data["shortfall"]) == Decimal("100")


async def test_validate_unknown_coupon(client):
    response = await client.post("/api/v1/coupons/validate", json={"code": "NOPE", "amount": "100"})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "COUPON_NOT_FOUND"


async def test_use_coupon_until_exhausted(client, add_coupon):
    coupon_id = await add_coupon(usage_limit=1)
    body = {"order_id": "8f1d2c3e-0000-4000-8000-000000000001", "discount_amount": "300"}

    first = await client.post(f"/api/v1/coupons/{coupon_id}/use", json=body)
    assert first.status_code == 200
    assert first.json()["used_count"] == 1

    second = await client.post(f"/api/v1/coupons/{coupon_id}/use", json=body)
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "COUPON_EXHAUSTED"


async def test_quote_order(client, add_coupon):
    await add_coupon()

    response = await client.post("/api/v1/orders/quote", json={
        "items": ITEMS,
        "rental_start_date": "2024-01-01T00:00:00Z",
        "rental_end_date": "2024-01-04T00:00:00Z",
        "delivery_charge": "100",
        "coupon_code": "SAVE20",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["breakdown"]["rental_days"] == 3
    assert Decimal(data["breakdown"]["total_amount"]) == Decimal("1800")
    assert data["coupon"]["eligibility"]["eligible"] is True


async def test_quote_with_inverted_window(client):
    response = await client.post("/api/v1/orders/quote", json={
        "items": ITEMS,
        "rental_start_date": "2024-01-04T00:00:00Z",
        "rental_end_date": "2024-01-01T00:00:00Z",
    })

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "INCONSISTENT_RENTAL_WINDOW"


async def test_checkout_redeems_coupon_once(client, add_coupon):
    await add_coupon(usage_limit=1)

    order = await place_order(client, coupon_code="SAVE20")
    assert order["applied_coupon_code"] == "SAVE20"
    assert Decimal(order["total_amount"]) == Decimal("1800")

    response = await client.post("/api/v1/orders/", json={**ORDER, "coupon_code": "SAVE20"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "COUPON_EXHAUSTED"


async def test_update_status_notifies_customer(client, notifier):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "order_status": "confirmed",
        "payment_status": "paid",
        "notes": "Stock checked",
        "updated_by": "admin-1",
    })

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["order"]["order_status"] == "confirmed"
    assert data["order"]["payment_status"] == "paid"
    assert data["order"]["version"] == 2
    assert len(data["records"]) == 2
    assert data["notification_queued"] is True
    assert notifier.requests[0].new_status == "confirmed"


async def test_strict_admin_policy_rejects_illegal_transition(client, notifier):
    app.dependency_overrides[get_admin_status_machine] = lambda: OrderStatusMachine(STRICT_POLICY)
    order = await place_order(client)

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "payment_status": "refunded",
        "updated_by": "admin-1",
    })
    assert response.status_code == 200

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "payment_status": "paid",
        "updated_by": "admin-1",
    })

    assert response.status_code == 409
    error = response.json()["error"]
    assert error["code"] == "ILLEGAL_STATUS_TRANSITION"
    assert error["detail"]["rejections"][0]["field"] == "payment"
    assert notifier.requests == []


async def test_update_status_with_stale_version(client):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "order_status": "confirmed",
        "updated_by": "admin-1",
        "expected_version": 7,
    })

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "STALE_ORDER"


async def test_delivery_queue_and_completion(client):
    order = await place_order(client)

    queue = (await client.get("/api/v1/delivery/partner-1/queue", params={"today": "2024-06-10"})).json()
    assert [entry["order"]["id"] for entry in queue["drops"]] == [order["id"]]
    assert queue["pickups"] == []

    response = await client.post(
        f"/api/v1/delivery/partner-1/orders/{order['id']}/complete", json={"kind": "drop"}
    )
    assert response.status_code == 200
    assert response.json()["changed"] is True
    assert response.json()["order"]["delivery_status"] == "delivered"

    queue = (await client.get("/api/v1/delivery/partner-1/queue", params={"today": "2024-06-10"})).json()
    assert queue["drops"] == []
    assert queue["pickups"][0]["overdue"] is True
    assert [entry["order"]["id"] for entry in queue["completed"]] == [order["id"]]

    overdue = await client.get("/api/v1/orders/", params={"due": "overdue", "today": "2024-06-10"})
    assert [o["id"] for o in overdue.json()] == [order["id"]]


async def test_completion_by_unassigned_partner(client):
    order = await place_order(client)

    response = await client.post(
        f"/api/v1/delivery/partner-2/orders/{order['id']}/complete", json={"kind": "drop"}
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ORDER_NOT_ASSIGNED_TO_WORKER"


async def test_get_missing_order(client):
    response = await client.get("/api/v1/orders/8f1d2c3e-0000-4000-8000-000000000099")
    assert response.status_code == 404


async def test_admin_assigns_delivery_partner(client):
    order = await place_order(client, delivery_partner_id=None)

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "order_status": "confirmed",
        "delivery_partner_id": "partner-9",
        "updated_by": "admin-1",
    })

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["order"]["delivery_partner_id"] == "partner-9"
    assert data["order"]["order_status"] == "confirmed"
    assignment = [r for r in data["records"] if r["field"] == "delivery_partner"]
    assert assignment[0]["previous_status"] is None
    assert assignment[0]["status"] == "partner-9"

    queue = (await client.get("/api/v1/delivery/partner-9/queue", params={"today": "2024-06-10"})).json()
    assert [entry["order"]["id"] for entry in queue["drops"]] == [order["id"]]


async def test_admin_reassigns_delivery_partner(client):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/orders/{order['id']}/status", json={
        "delivery_partner_id": "partner-2",
        "updated_by": "admin-1",
    })

    assert response.status_code == 200, response.text
    assert response.json()["order"]["version"] == 2

    old_queue = (await client.get("/api/v1/delivery/partner-1/queue", params={"today": "2024-06-10"})).json()
    assert old_queue["drops"] == []

    response = await client.post(
        f"/api/v1/delivery/partner-2/orders/{order['id']}/complete", json={"kind": "drop"}
    )
    assert response.status_code == 200


async def test_partner_updates_status(client, notifier):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/delivery/partner-1/orders/{order['id']}/status", json={
        "order_status": "confirmed",
        "payment_status": "paid",
        "notes": "Collected cash",
    })

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["order"]["order_status"] == "confirmed"
    assert data["order"]["payment_status"] == "paid"
    assert {r["actor"] for r in data["records"]} == {"partner-1"}
    assert data["notification_queued"] is True
    assert notifier.requests[0].new_status == "confirmed"


async def test_partner_status_update_uses_strict_tables(client, notifier):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/delivery/partner-1/orders/{order['id']}/status", json={
        "order_status": "delivered",
    })

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ILLEGAL_STATUS_TRANSITION"
    assert notifier.requests == []

    stored = (await client.get(f"/api/v1/orders/{order['id']}")).json()
    assert stored["order_status"] == "pending"
    assert stored["version"] == 1


async def test_partner_cannot_update_unassigned_order(client):
    order = await place_order(client)

    response = await client.patch(f"/api/v1/delivery/partner-2/orders/{order['id']}/status", json={
        "order_status": "confirmed",
    })

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ORDER_NOT_ASSIGNED_TO_WORKER"
