"""Email service with template rendering and sending"""

import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict, Optional
import logging
from pathlib import Path
from datetime import datetime
from jinja2 import Environment, FileSystemLoader, select_autoescape

from rental_orders.core.config import settings
from rental_orders.utils.helpers import ensure_utc

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "emails"

STATUS_STYLES = {
    "pending": ("⏳", "#ff9800", "Your order is being reviewed and will be confirmed soon."),
    "confirmed": ("✓", "#2196f3", "Great news! Your order has been confirmed and will be processed shortly."),
    "processing": ("⚙️", "#2196f3", "Your order is being prepared for shipment."),
    "shipped": ("🚚", "#673ab7", "Your order is on its way! It will be delivered soon."),
    "delivered": ("✅", "#4caf50", "Your order has been successfully delivered. Enjoy your rental!"),
    "cancelled": ("❌", "#f44336", "Your order has been cancelled. If you have questions, please contact support."),
    "rejected": ("❌", "#f44336", "Unfortunately, your order could not be processed. Please contact support for more information."),
}
DEFAULT_STATUS_STYLE = ("📦", "#9A2143", "Your order status has been updated.")

def format_date(value: Any) -> str:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value is None:
        return ""
    return ensure_utc(value).strftime('%B %d, %Y')

def format_price(value: Any) -> str:
    return f"{settings.CURRENCY_SYMBOL}{float(value):,.2f}"

class EmailService:
    """Renders and sends customer emails over SMTP"""

    def __init__(self):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.from_email = settings.FROM_EMAIL
        self.from_name = settings.FROM_NAME

        self.env = Environment(
            loader=FileSystemLoader(str(TEMPLATE_DIR)),
            autoescape=select_autoescape(['html', 'xml'])
        )
        self.env.filters["date"] = format_date
        self.env.filters["price"] = format_price

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None
    ) -> bool:
        """
        Send an email

        Raises whatever the SMTP client raises so the calling task can log the failure.
        """
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email

        msg.attach(MIMEText(body, 'plain', 'utf-8'))
        if html_body:
            msg.attach(MIMEText(html_body, 'html', 'utf-8'))

        async with aiosmtplib.SMTP(
            hostname=self.smtp_host,
            port=self.smtp_port,
            start_tls=True
        ) as smtp:
            if self.smtp_user:
                await smtp.login(self.smtp_user, self.smtp_password)
            await smtp.send_message(msg)

        logger.info(f"Email sent successfully to {to_email}")
        return True

    def render_order_status_update(self, data: Dict[str, Any]) -> Dict[str, str]:
        """Subject, plain text and HTML body for an order status change"""
        status = data["new_status"].lower()
        emoji, color, message = STATUS_STYLES.get(status, DEFAULT_STATUS_STYLE)

        template = self.env.get_template("order_status_update.html")
        html_body = template.render(
            **data,
            status_emoji=emoji,
            status_color=color,
            status_message=message,
            tracking_url=settings.ORDER_TRACKING_URL,
            app_name=settings.APP_NAME
        )

        body = (
            f"Dear {data['customer_name']},\n\n"
            f"Order #{data['order_number']} is now {data['new_status']}.\n"
            f"{message}\n"
        )
        if data.get("notes"):
            body += f"\nNote: {data['notes']}\n"

        return {
            "subject": f"{emoji} Order {data['order_number']} - Status Update: {data['new_status']}",
            "body": body,
            "html_body": html_body,
        }

    async def send_order_status_update(self, data: Dict[str, Any]) -> bool:
        """Send the status update email described by a notification payload"""
        rendered = self.render_order_status_update(data)
        return await self.send_email(to_email=data["customer_email"], **rendered)
