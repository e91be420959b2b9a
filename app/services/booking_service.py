"""Booking lifecycle: creation, status transitions, cancellation, soft delete."""

from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.logging_config import get_logger
from app.models.activity import Activity
from app.models.booking import Booking
from app.models.enums import (
    ALLOWED_TRANSITIONS,
    BookingStatus,
    ContactKind,
    NotificationKind,
    PaymentStatus,
)
from app.models.place import Place
from app.models.user import User
from app.schemas.booking import BookingCreate, BookingUpdate
from app.utils.pricing import calculate_booking_price, empty_breakdown, resolve_base_price
from app.utils.time_utils import to_naive_utc, utcnow

logger = get_logger()

_STATUS_VALUES = {s.value for s in BookingStatus}
_EDITABLE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


def can_transition(current: str, target: str) -> bool:
    allowed = ALLOWED_TRANSITIONS.get(BookingStatus(current), ())
    return BookingStatus(target) in allowed


class BookingService:

    def __init__(self, db: Session, notifier=None, background_tasks=None):
        self.db = db
        self.notifier = notifier
        self.background_tasks = background_tasks

    # ---------------------------------------------------------------------
    # HELPERS
    # ---------------------------------------------------------------------
    def _query(self, include_deleted: bool = False):
        query = self.db.query(Booking)
        if not include_deleted:
            query = query.filter(Booking.deleted.is_(False))
        return query

    def _get_booking(self, booking_id: int, include_deleted: bool = False) -> Booking:
        booking = self._query(include_deleted).filter(Booking.id == booking_id).first()
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    @staticmethod
    def _ensure_owner(booking: Booking, actor: User, action: str) -> None:
        if booking.user_id != actor.id:
            raise ForbiddenError(f"Not authorized to {action} this booking")

    @staticmethod
    def _ensure_owner_or_admin(booking: Booking, actor: User, action: str) -> None:
        if booking.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError(f"Not authorized to {action} this booking")

    @staticmethod
    def _validate_status(value: str) -> str:
        if value not in _STATUS_VALUES:
            raise ValidationFailedError("Invalid status")
        return value

    @staticmethod
    def _validate_participants(value: int) -> int:
        if not settings.MIN_PARTICIPANTS <= value <= settings.MAX_PARTICIPANTS:
            raise ValidationFailedError(
                f"participants must be between {settings.MIN_PARTICIPANTS} "
                f"and {settings.MAX_PARTICIPANTS}"
            )
        return value

    def _resolve_item(self, activity_id: Optional[int], place_id: Optional[int]):
        if activity_id:
            return self.db.query(Activity).filter(Activity.id == activity_id).first()
        return self.db.query(Place).filter(Place.id == place_id).first()

    def _notify(self, kind: NotificationKind, booking: Booking, user: Optional[User] = None) -> None:
        if self.notifier is None:
            return
        self.notifier.dispatch(kind, booking, user=user, background_tasks=self.background_tasks)

    def _commit(self, booking: Booking) -> Booking:
        self.db.commit()
        self.db.refresh(booking)
        return booking

    # ---------------------------------------------------------------------
    # READS
    # ---------------------------------------------------------------------
    def my_bookings(self, actor: User, include_deleted: bool = False) -> List[Booking]:
        return (
            self._query(include_deleted)
            .filter(Booking.user_id == actor.id)
            .order_by(Booking.created_at.desc(), Booking.id.desc())
            .all()
        )

    def get_booking(self, booking_id: int, actor: User, include_deleted: bool = False) -> Booking:
        booking = self._get_booking(booking_id, include_deleted)
        self._ensure_owner_or_admin(booking, actor, "view")
        return booking

    def all_bookings(self, actor: User, include_deleted: bool = False) -> List[Booking]:
        if not actor.is_admin:
            raise ForbiddenError("Admins only")
        return self._query(include_deleted).order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    # ---------------------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------------------
    def create_booking(self, actor: User, data: BookingCreate) -> Booking:
        if not data.activity_id and not data.place_id:
            raise ValidationFailedError("Either activity_id or place_id is required")

        participants = self._validate_participants(data.participants or data.people_count or 1)

        # Caller-supplied amount wins; otherwise price from the catalog item
        total_amount = data.total_amount
        pricing = empty_breakdown()
        if not total_amount:
            item = self._resolve_item(data.activity_id, data.place_id)
            if item is not None:
                pricing = calculate_booking_price(
                    resolve_base_price(item), participants, promo_off=data.promo_off
                )
                total_amount = pricing["total"]
            else:
                logger.bind(log_type="booking").warning(
                    f"No priced item for booking | activity={data.activity_id} | place={data.place_id}"
                )
        else:
            pricing["total"] = total_amount

        if data.contact is not None:
            contact_kind = data.contact.kind
            contact = data.contact.model_dump(mode="json", exclude={"kind"})
        else:
            contact_kind = ContactKind.SNAPSHOT.value
            contact = {"customer": {"name": actor.name, "email": actor.email, "phone": actor.phone or ""}}

        booking = Booking(
            user_id=actor.id,
            activity_id=data.activity_id,
            place_id=data.place_id,
            date=to_naive_utc(data.date),
            time=data.time,
            participants=participants,
            people_count=participants,
            contact_kind=contact_kind,
            contact=contact,
            special_requests=data.special_requests or "",
            total_amount=total_amount or 0,
            pricing=pricing,
            status=BookingStatus.CONFIRMED.value,
            payment_status=PaymentStatus.PENDING.value,
        )

        self.db.add(booking)
        self._commit(booking)

        logger.bind(log_type="booking").info(
            f"Booking Created | id={booking.id} | user={actor.email} | total={booking.total_amount}"
        )

        self._notify(NotificationKind.BOOKING_CONFIRMATION, booking)
        return booking

    # ---------------------------------------------------------------------
    # CANCEL
    # ---------------------------------------------------------------------
    def cancel_booking(self, booking_id: int, actor: User, reason: Optional[str] = None) -> Booking:
        booking = self._get_booking(booking_id)
        self._ensure_owner_or_admin(booking, actor, "cancel")

        if booking.status == BookingStatus.CANCELLED.value:
            raise InvalidStateError("Booking is already cancelled")

        hours_left = (booking.date - utcnow()).total_seconds() / 3600
        if hours_left < settings.MIN_CANCELLATION_HOURS:
            raise InvalidStateError(
                f"Cancellation must be done at least {settings.MIN_CANCELLATION_HOURS} "
                f"hours before the booking date"
            )

        booking.status = BookingStatus.CANCELLED.value
        booking.cancellation_reason = reason or "Cancelled by user"
        self._commit(booking)

        logger.bind(log_type="booking").info(
            f"Booking Cancelled | id={booking.id} | by={actor.email} | reason={booking.cancellation_reason}"
        )

        self._notify(NotificationKind.BOOKING_CANCELLATION, booking, user=booking.user)
        return booking

    # ---------------------------------------------------------------------
    # UPDATE
    # ---------------------------------------------------------------------
    def update_booking(self, booking_id: int, actor: User, data: BookingUpdate) -> Booking:
        booking = self._get_booking(booking_id)
        self._ensure_owner(booking, actor, "update")

        if booking.status not in _EDITABLE_STATUSES:
            raise InvalidStateError("Can only update pending or confirmed bookings")

        if data.participants:
            self._validate_participants(data.participants)

        if data.date:
            booking.date = to_naive_utc(data.date)
        if data.participants:
            booking.participants = data.participants
            booking.people_count = data.participants
        if data.special_requests:
            booking.special_requests = data.special_requests

        self._commit(booking)
        logger.bind(log_type="booking").info(f"Booking Updated | id={booking.id}")
        return booking

    # ---------------------------------------------------------------------
    # STATUS CHANGES
    # ---------------------------------------------------------------------
    def quick_update_status(self, booking_id: int, actor: User, new_status: str) -> Booking:
        """Status change restricted to ``ALLOWED_TRANSITIONS``."""
        self._validate_status(new_status)

        booking = self._get_booking(booking_id)
        self._ensure_owner_or_admin(booking, actor, "update")

        if not can_transition(booking.status, new_status):
            raise InvalidTransitionError(booking.status, new_status)

        previous = booking.status
        booking.status = new_status
        self._commit(booking)

        logger.bind(log_type="booking").info(
            f"Booking Status | id={booking.id} | {previous} -> {new_status} | by={actor.email}"
        )
        return booking

    def admin_set_status(self, booking_id: int, actor: User, new_status: str) -> Booking:
        """Manual correction: any status, transition table not consulted."""
        if not actor.is_admin:
            raise ForbiddenError("Admins only")
        self._validate_status(new_status)

        booking = self._get_booking(booking_id)
        previous = booking.status
        booking.status = new_status
        self._commit(booking)

        logger.bind(log_type="admin").info(
            f"Admin set booking status | id={booking.id} | {previous} -> {new_status} | admin={actor.email}"
        )
        return booking

    # ---------------------------------------------------------------------
    # DELETE (soft)
    # ---------------------------------------------------------------------
    def delete_booking(self, booking_id: int, actor: User) -> None:
        booking = self._get_booking(booking_id)
        self._ensure_owner_or_admin(booking, actor, "delete")

        now = utcnow()
        if booking.status != BookingStatus.CANCELLED.value and not booking.date < now:
            raise InvalidStateError("Only cancelled or past bookings can be deleted")

        booking.deleted = True
        booking.deleted_at = now
        self.db.commit()

        logger.bind(log_type="booking").info(f"Booking Deleted | id={booking.id} | by={actor.email}")

    # ---------------------------------------------------------------------
    # CONFIRM PAYMENT (booking side, no Payment record involved)
    # ---------------------------------------------------------------------
    def confirm_payment(
        self,
        actor: User,
        booking_id: int,
        payment_id: str,
        amount: Optional[float] = None,
    ) -> Booking:
        if not payment_id:
            raise ValidationFailedError("Booking ID and payment ID are required")

        booking = self._get_booking(booking_id)
        self._ensure_owner(booking, actor, "confirm payment for")

        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.PAID.value
        booking.payment_id = payment_id
        if amount:
            booking.total_amount = amount

        self._commit(booking)
        logger.bind(log_type="payment").info(
            f"Booking payment confirmed directly | booking={booking.id} | payment={payment_id}"
        )
        return booking
