"""Best-effort booking notifications.

The dispatcher is only called once a state transition has been committed, and
it never raises: a failed or timed-out send leaves the booking under-notified,
never inconsistent.
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core.config import Settings, settings
from app.core.logging_config import get_logger
from app.models.enums import NotificationKind

logger = get_logger()

SUBJECTS = {
    NotificationKind.BOOKING_CONFIRMATION: "Booking Confirmed - {title}",
    NotificationKind.BOOKING_CANCELLATION: "Booking Cancelled - {title}",
    NotificationKind.PAYMENT_CONFIRMATION: "Payment Received - {title}",
    NotificationKind.BOOKING_REMINDER: "Reminder: {title} is tomorrow",
}


def build_payload(booking, user=None, item=None) -> dict:
    """Detach everything a message needs from the ORM objects.

    Delivery may run after the request's session is closed, so only plain
    values leave this function. Without a user the booking's own contact is
    the recipient.
    """
    item = item if item is not None else booking.item
    if user is not None:
        recipient = {"name": user.name, "email": user.email}
    else:
        contact = booking.primary_contact
        recipient = {"name": contact.get("name", ""), "email": contact.get("email")}

    return {
        "recipient": recipient,
        "booking": {
            "id": booking.id,
            "date": booking.date,
            "time": booking.time,
            "participants": booking.participants,
            "total_amount": booking.total_amount,
            "pricing": dict(booking.pricing or {}),
            "status": booking.status,
            "payment_status": booking.payment_status,
            "payment_id": booking.payment_id,
            "cancellation_reason": booking.cancellation_reason,
        },
        "item": {
            "title": getattr(item, "title", None) or getattr(item, "name", None) or "your booking",
            "location": getattr(item, "location", None),
        },
        "frontend_url": settings.FRONTEND_URL,
    }


class EmailSender:
    """Render a notification with jinja2 and deliver it over SMTP."""

    def __init__(self, config: Settings | None = None, templates_path: Optional[Path] = None):
        self._settings = config or settings
        self._templates_path = templates_path or Path(__file__).resolve().parent.parent / "templates" / "email"
        self._environment = Environment(
            loader=FileSystemLoader(self._templates_path),
            autoescape=select_autoescape(["html", "xml"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._environment.filters["day"] = lambda value: value.strftime("%B %d, %Y") if value else ""

    def render(self, kind: NotificationKind, payload: dict) -> EmailMessage:
        kind = NotificationKind(kind)
        html_body = self._environment.get_template(f"{kind.value}.html").render(**payload)
        text_body = self._environment.get_template(f"{kind.value}.txt").render(**payload)

        message = EmailMessage()
        message["Subject"] = SUBJECTS[kind].format(title=payload["item"]["title"])
        if self._settings.SMTP_FROM_NAME:
            message["From"] = formataddr((self._settings.SMTP_FROM_NAME, self._settings.SMTP_FROM_EMAIL))
        else:
            message["From"] = self._settings.SMTP_FROM_EMAIL
        message["To"] = payload["recipient"]["email"]
        message.set_content(text_body)
        message.add_alternative(html_body, subtype="html")
        return message

    def send(self, kind: NotificationKind, payload: dict) -> None:
        message = self.render(kind, payload)

        if not self._settings.SMTP_HOST:
            logger.bind(log_type="notification").info(
                f"EMAIL (simulated) | {message['Subject']} | to={message['To']}"
            )
            return

        with smtplib.SMTP(
            self._settings.SMTP_HOST,
            self._settings.SMTP_PORT,
            timeout=self._settings.SMTP_TIMEOUT,
        ) as client:
            if self._settings.SMTP_USE_TLS:
                client.starttls()
            if self._settings.SMTP_USERNAME and self._settings.SMTP_PASSWORD:
                client.login(self._settings.SMTP_USERNAME, self._settings.SMTP_PASSWORD)
            client.send_message(message)


class NotificationDispatcher:

    def __init__(self, sender: EmailSender):
        self._sender = sender

    def deliver(self, kind: NotificationKind, payload: dict) -> bool:
        kind = NotificationKind(kind).value
        booking_id = payload["booking"]["id"]
        if not payload["recipient"].get("email"):
            logger.bind(log_type="notification").warning(
                f"No recipient email | kind={kind} | booking={booking_id}"
            )
            return False

        try:
            self._sender.send(kind, payload)
        except Exception as e:
            logger.bind(log_type="notification").error(
                f"Notification failed | kind={kind} | booking={booking_id} | {e}"
            )
            return False

        logger.bind(log_type="notification").info(f"Notification sent | kind={kind} | booking={booking_id}")
        return True

    def dispatch(self, kind: NotificationKind, booking, user=None, item=None, background_tasks=None):
        """Send now, or after the response when ``background_tasks`` is given."""
        try:
            payload = build_payload(booking, user, item)
        except Exception as e:
            logger.bind(log_type="notification").error(
                f"Could not prepare notification | kind={NotificationKind(kind).value} | booking={booking.id} | {e}"
            )
            return False

        if background_tasks is not None:
            background_tasks.add_task(self.deliver, kind, payload)
            return None
        return self.deliver(kind, payload)
