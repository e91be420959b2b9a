from datetime import timedelta

import pytest

from app.core.exceptions import (
    ForbiddenError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.enums import BookingStatus, NotificationKind, PaymentStatus
from app.schemas.booking import BookingCreate, BookingUpdate
from app.services.booking_service import BookingService, can_transition
from app.utils.time_utils import utcnow


@pytest.fixture
def service(db, notifier):
    return BookingService(db, notifier=notifier)


def _create(**fields):
    fields.setdefault("date", utcnow() + timedelta(days=5))
    return BookingCreate(**fields)


# ---------------- TRANSITION TABLE ----------------
@pytest.mark.parametrize("current,target,allowed", [
    ("pending", "confirmed", True),
    ("pending", "cancelled", True),
    ("confirmed", "completed", True),
    ("confirmed", "cancelled", True),
    ("confirmed", "pending", False),
    ("completed", "cancelled", False),
    ("cancelled", "confirmed", False),
])
def test_can_transition(current, target, allowed):
    assert can_transition(current, target) is allowed


# ---------------- CREATE ----------------
def test_create_prices_from_activity(service, traveller, activity, notifier):
    booking = service.create_booking(traveller, _create(activity_id=activity.id, participants=2))

    assert booking.status == BookingStatus.CONFIRMED.value
    assert booking.payment_status == PaymentStatus.PENDING.value
    assert booking.total_amount == 2460
    assert booking.pricing["tax"] == 360
    assert booking.people_count == 2
    assert booking.contact_kind == "snapshot"
    assert booking.contact["customer"]["email"] == traveller.email
    assert notifier.sent == [(NotificationKind.BOOKING_CONFIRMATION, booking.id, None)]


def test_create_keeps_caller_amount(service, traveller, activity):
    booking = service.create_booking(traveller, _create(activity_id=activity.id, total_amount=1500))

    assert booking.total_amount == 1500
    assert booking.pricing["total"] == 1500


def test_create_unpriced_item_uses_default_price(service, traveller, unpriced_place):
    booking = service.create_booking(traveller, _create(place_id=unpriced_place.id, people_count=1))

    assert booking.pricing["basePrice"] == 99
    assert booking.participants == 1


def test_create_with_missing_item_is_free(service, traveller):
    booking = service.create_booking(traveller, _create(activity_id=4242))

    assert booking.total_amount == 0
    assert booking.pricing["total"] == 0


def test_create_requires_an_item(service, traveller):
    with pytest.raises(ValidationFailedError):
        service.create_booking(traveller, _create())


def test_create_with_structured_contact(service, traveller, activity):
    data = _create(
        activity_id=activity.id,
        contact={"kind": "structured", "participants": [
            {"name": "Meera", "email": "meera@example.com", "phone": "12345"},
            {"name": "Kabir", "email": "kabir@example.com"},
        ]},
    )
    booking = service.create_booking(traveller, data)

    assert booking.contact_kind == "structured"
    assert len(booking.contact["participants"]) == 2
    assert booking.primary_contact["email"] == "meera@example.com"


# ---------------- CANCEL ----------------
def test_owner_cancels_with_default_reason(service, traveller, make_booking, notifier):
    booking = make_booking(traveller)

    cancelled = service.cancel_booking(booking.id, traveller)

    assert cancelled.status == BookingStatus.CANCELLED.value
    assert cancelled.cancellation_reason == "Cancelled by user"
    assert notifier.kinds() == [NotificationKind.BOOKING_CANCELLATION]


def test_cancel_twice_is_rejected(service, traveller, make_booking):
    booking = make_booking(traveller, status=BookingStatus.CANCELLED.value)

    with pytest.raises(InvalidStateError) as exc:
        service.cancel_booking(booking.id, traveller, "again")
    assert exc.value.detail == "Booking is already cancelled"


def test_cancel_inside_window_is_rejected(service, traveller, make_booking, notifier):
    booking = make_booking(traveller, date=utcnow() + timedelta(hours=5))

    with pytest.raises(InvalidStateError) as exc:
        service.cancel_booking(booking.id, traveller)

    assert "at least 24 hours" in exc.value.detail
    assert notifier.sent == []


def test_cancel_by_stranger_is_forbidden(service, traveller, other_user, make_booking):
    booking = make_booking(traveller)

    with pytest.raises(ForbiddenError):
        service.cancel_booking(booking.id, other_user)


def test_admin_may_cancel_any_booking(service, traveller, admin, make_booking):
    booking = make_booking(traveller)

    assert service.cancel_booking(booking.id, admin, "Weather").cancellation_reason == "Weather"


# ---------------- STATUS ----------------
def test_quick_status_follows_transition_table(service, traveller, make_booking):
    booking = make_booking(traveller)

    assert service.quick_update_status(booking.id, traveller, "completed").status == "completed"

    with pytest.raises(InvalidTransitionError) as exc:
        service.quick_update_status(booking.id, traveller, "cancelled")
    assert exc.value.detail == "Cannot change status from completed to cancelled"


def test_quick_status_rejects_unknown_status(service, traveller, make_booking):
    booking = make_booking(traveller)

    with pytest.raises(ValidationFailedError):
        service.quick_update_status(booking.id, traveller, "archived")


def test_admin_set_status_ignores_transition_table(service, traveller, admin, make_booking):
    booking = make_booking(traveller, status=BookingStatus.COMPLETED.value)

    assert service.admin_set_status(booking.id, admin, "pending").status == "pending"

    with pytest.raises(ForbiddenError):
        service.admin_set_status(booking.id, traveller, "confirmed")


# ---------------- UPDATE ----------------
def test_update_only_open_bookings(service, traveller, make_booking):
    booking = make_booking(traveller, status=BookingStatus.COMPLETED.value)

    with pytest.raises(InvalidStateError):
        service.update_booking(booking.id, traveller, BookingUpdate(special_requests="Veg meals"))


def test_update_validates_before_writing(service, db, traveller, make_booking, monkeypatch):
    from app.core.config import settings

    booking = make_booking(traveller)
    monkeypatch.setattr(settings, "MAX_PARTICIPANTS", 3)

    with pytest.raises(ValidationFailedError):
        service.update_booking(booking.id, traveller, BookingUpdate(participants=4, special_requests="x"))

    db.refresh(booking)
    assert booking.participants == 2
    assert booking.special_requests == ""


def test_update_changes_fields(service, traveller, make_booking):
    booking = make_booking(traveller)

    updated = service.update_booking(booking.id, traveller, BookingUpdate(participants=3, special_requests="Veg"))

    assert updated.participants == 3
    assert updated.people_count == 3
    assert updated.special_requests == "Veg"


# ---------------- DELETE ----------------
def test_delete_future_confirmed_booking_is_rejected(service, traveller, make_booking):
    booking = make_booking(traveller)

    with pytest.raises(InvalidStateError):
        service.delete_booking(booking.id, traveller)


def test_soft_deleted_booking_hidden_from_reads(service, traveller, make_booking):
    booking = make_booking(traveller, status=BookingStatus.CANCELLED.value)

    service.delete_booking(booking.id, traveller)

    with pytest.raises(NotFoundError):
        service.get_booking(booking.id, traveller)
    assert service.my_bookings(traveller) == []

    hidden = service.get_booking(booking.id, traveller, include_deleted=True)
    assert hidden.deleted is True
    assert hidden.deleted_at is not None
    assert [b.id for b in service.my_bookings(traveller, include_deleted=True)] == [booking.id]


def test_past_booking_can_be_deleted(service, traveller, make_booking):
    booking = make_booking(traveller, date=utcnow() - timedelta(days=1))

    service.delete_booking(booking.id, traveller)

    with pytest.raises(NotFoundError):
        service.get_booking(booking.id, traveller)


def test_deleted_booking_cannot_be_cancelled(service, traveller, make_booking):
    booking = make_booking(traveller, deleted=True)

    with pytest.raises(NotFoundError):
        service.cancel_booking(booking.id, traveller)


# ---------------- READS ----------------
def test_all_bookings_is_admin_only(service, traveller, admin, make_booking):
    make_booking(traveller)

    assert len(service.all_bookings(admin)) == 1
    with pytest.raises(ForbiddenError):
        service.all_bookings(traveller)


def test_confirm_payment_marks_booking_paid(service, traveller, other_user, make_booking):
    booking = make_booking(traveller)

    with pytest.raises(ForbiddenError):
        service.confirm_payment(other_user, booking.id, "pay_1")

    paid = service.confirm_payment(traveller, booking.id, "pay_1", 2000)

    assert paid.payment_status == PaymentStatus.PAID.value
    assert paid.status == BookingStatus.CONFIRMED.value
    assert paid.payment_id == "pay_1"
    assert paid.total_amount == 2000


@pytest.mark.parametrize("hours,allowed", [(23, False), (25, True)])
def test_cancellation_window_boundary(service, traveller, make_booking, hours, allowed):
    booking = make_booking(traveller, date=utcnow() + timedelta(hours=hours))

    if allowed:
        assert service.cancel_booking(booking.id, traveller).status == BookingStatus.CANCELLED.value
    else:
        with pytest.raises(InvalidStateError):
            service.cancel_booking(booking.id, traveller)


@pytest.mark.parametrize("target", [s.value for s in BookingStatus])
def test_completed_booking_is_terminal(service, db, traveller, make_booking, target):
    booking = make_booking(traveller, status=BookingStatus.COMPLETED.value)
    before = (booking.status, booking.payment_status, booking.updated_at)

    with pytest.raises(InvalidTransitionError):
        service.quick_update_status(booking.id, traveller, target)

    db.refresh(booking)
    assert (booking.status, booking.payment_status, booking.updated_at) == before
