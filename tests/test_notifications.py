import logging

import pytest

from rental_orders.core.config import settings
from rental_orders.services import order_notification
from rental_orders.services.email_service import EmailService
from rental_orders.services.order_notification import OrderNotificationService
from rental_orders.services.order_status import OrderStatusMachine
from rental_orders.tasks import notification_tasks


class FakeTask:
    def __init__(self, error=None):
        self.payloads = []
        self.error = error

    def delay(self, payload):
        if self.error:
            raise self.error
        self.payloads.append(payload)


@pytest.fixture
def notification_request(make_order, now):
    outcome = OrderStatusMachine().transition(
        make_order(), actor="admin-1", order_status="confirmed", notes="See you soon", now=now
    )
    return outcome.notification


def test_dispatch_queues_json_payload(monkeypatch, notification_request):
    task = FakeTask()
    monkeypatch.setattr(order_notification, "send_order_status_update_email", task)

    assert OrderNotificationService().dispatch(notification_request)

    payload = task.payloads[0]
    assert payload["customer_email"] == "asha@example.com"
    assert payload["new_status"] == "confirmed"
    assert payload["previous_status"] == "pending"
    assert payload["line_item_summaries"] == [{"title": "Silk Sherwani", "quantity": 2}]


def test_dispatch_failure_is_logged_not_raised(monkeypatch, caplog, notification_request):
    monkeypatch.setattr(
        order_notification, "send_order_status_update_email", FakeTask(error=ConnectionError("broker down"))
    )

    with caplog.at_level(logging.WARNING, logger="rental_orders.services.order_notification"):
        assert not OrderNotificationService().dispatch(notification_request)

    assert "broker down" in caplog.text


def test_dispatch_skipped_when_disabled(monkeypatch, notification_request):
    task = FakeTask()
    monkeypatch.setattr(order_notification, "send_order_status_update_email", task)
    monkeypatch.setattr(settings, "NOTIFICATIONS_ENABLED", False)

    assert not OrderNotificationService().dispatch(notification_request)
    assert task.payloads == []


def test_status_update_email_rendering(notification_request):
    payload = notification_request.model_dump(mode="json")

    rendered = EmailService().render_order_status_update(payload)

    assert notification_request.order_number in rendered["subject"]
    assert "confirmed" in rendered["subject"]
    assert "Asha" in rendered["html_body"]
    assert "Silk Sherwani" in rendered["html_body"]
    assert "See you soon" in rendered["html_body"]
    assert "Great news!" in rendered["body"]


def test_email_task_sends_rendered_payload(monkeypatch, notification_request):
    sent = []

    async def fake_send(self, data):
        sent.append(data)
        return True

    monkeypatch.setattr(notification_tasks.EmailService, "send_order_status_update", fake_send)
    payload = notification_request.model_dump(mode="json")

    result = notification_tasks.send_order_status_update_email(payload)

    assert result == {"success": True}
    assert sent == [payload]


def test_email_task_failure_is_logged_not_retried(monkeypatch, caplog, notification_request):
    attempts = []

    async def failing_send(self, data):
        attempts.append(data)
        raise ConnectionError("smtp unreachable")

    monkeypatch.setattr(notification_tasks.EmailService, "send_order_status_update", failing_send)
    payload = notification_request.model_dump(mode="json")
    task = notification_tasks.send_order_status_update_email

    with caplog.at_level(logging.ERROR, logger="rental_orders.tasks.notification_tasks"):
        result = task(payload)

    assert result == {"success": False}
    assert len(attempts) == 1
    assert "smtp unreachable" in caplog.text
    assert task.max_retries == 0
    assert not getattr(task, "autoretry_for", ())
