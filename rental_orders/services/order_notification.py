"""Order notification service"""

import logging

from rental_orders.core.config import settings
from rental_orders.schemas.order import NotificationRequest
from rental_orders.tasks.notification_tasks import send_order_status_update_email

logger = logging.getLogger(__name__)

class OrderNotificationService:
    """Hands status change notifications to the background worker"""

    def dispatch(self, request: NotificationRequest) -> bool:
        """
        Queue a status update email

        Fire-and-forget: a failure to enqueue is logged and never reaches the
        caller, whose status change is already committed.

        Returns:
            True if the message was queued
        """
        if not settings.NOTIFICATIONS_ENABLED:
            logger.info(f"Notifications disabled, skipping status email for order {request.order_number}")
            return False

        try:
            send_order_status_update_email.delay(request.model_dump(mode="json"))
        except Exception as e:
            logger.warning(f"Failed to queue status email for order {request.order_number}: {str(e)}")
            return False

        logger.info(f"Queued status email for order {request.order_number} ({request.new_status})")
        return True
