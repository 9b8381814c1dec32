"""Customer notification background tasks"""

from celery.utils.log import get_task_logger
from typing import Dict, Any
import asyncio

from rental_orders.core.celery_app import celery_app
from rental_orders.services.email_service import EmailService

logger = get_task_logger(__name__)

@celery_app.task(max_retries=0)
def send_order_status_update_email(payload: Dict[str, Any]):
    """
    Send an order status update email from a serialized notification request

    Status emails are fire-and-forget: a failed send is logged and dropped.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        email_service = EmailService()
        result = loop.run_until_complete(
            email_service.send_order_status_update(payload)
        )
    except Exception as e:
        logger.error(f"Error sending status update for order {payload.get('order_number')}: {str(e)}")
        return {"success": False}
    finally:
        loop.close()

    logger.info(f"Status update email sent for order {payload.get('order_number')}")
    return {"success": result}
