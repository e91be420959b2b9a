"""Booking reminder scan.

Scheduling is external (cron / platform scheduler), e.g. hourly::

    0 * * * *  python -m app.jobs.reminders
"""

from datetime import timedelta

from sqlalchemy.orm import Session

from app.db import base  # noqa: F401
from app.core.config import settings
from app.core.dependencies import get_notification_dispatcher
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.db.session import SessionLocal
from app.models.enums import BookingStatus, NotificationKind
from app.utils.time_utils import utcnow

logger = get_logger()


def send_upcoming_reminders(db: Session, notifier, now=None) -> list[int]:
    """Remind bookings that start roughly ``REMINDER_LEAD_HOURS`` from now.

    ``reminder_sent`` is only set after a successful send, so a failed
    booking is retried on the next run.
    """
    now = now or utcnow()
    target = now + timedelta(hours=settings.REMINDER_LEAD_HOURS)
    window = timedelta(hours=settings.REMINDER_WINDOW_HOURS)

    upcoming = (
        db.query(Booking)
        .filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.deleted.is_(False),
            Booking.reminder_sent.is_(False),
            Booking.date >= target - window,
            Booking.date <= target + window,
        )
        .all()
    )

    logger.bind(log_type="notification").info(f"Reminder scan | candidates={len(upcoming)}")

    reminded = []
    for booking in upcoming:
        sent = notifier.dispatch(NotificationKind.BOOKING_REMINDER, booking, user=booking.user)
        if not sent:
            continue

        booking.reminder_sent = True
        db.commit()
        reminded.append(booking.id)

    logger.bind(log_type="notification").info(f"Reminder scan done | sent={len(reminded)}")
    return reminded


def main():
    db = SessionLocal()
    try:
        send_upcoming_reminders(db, get_notification_dispatcher())
    finally:
        db.close()


if __name__ == "__main__":
    main()
