from fastapi import APIRouter, Depends, Response, status

from app.core.dependencies import get_booking_service, get_current_user, require_admin
from app.core.logging_config import get_logger
from app.models.user import User
from app.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingOut,
    BookingStatusUpdate,
    BookingUpdate,
    ConfirmPaymentRequest,
)
from app.services.booking_service import BookingService
from app.services.receipt_service import ReceiptRenderer

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger()


def _out(booking) -> dict:
    return BookingOut.model_validate(booking).model_dump(mode="json")


# =====================================================================
# CREATE BOOKING
# =====================================================================
@router.post("/", status_code=status.HTTP_201_CREATED, response_model=dict)
def create_booking(
    data: BookingCreate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.create_booking(user, data)
    return {"message": "Booking created successfully", "booking": _out(booking)}


# =====================================================================
# USER: MY BOOKINGS
# =====================================================================
@router.get("/my-bookings", response_model=list[BookingOut])
def my_bookings(
    include_deleted: bool = False,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.my_bookings(user, include_deleted=include_deleted)


# =====================================================================
# CONFIRM PAYMENT (direct, without gateway verification)
# =====================================================================
@router.post("/confirm-payment", response_model=dict)
def confirm_payment(
    data: ConfirmPaymentRequest,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.confirm_payment(user, data.booking_id, data.payment_id, data.amount)
    return {"message": "Payment confirmed successfully", "booking": _out(booking)}


# =====================================================================
# ADMIN: ALL BOOKINGS
# =====================================================================
@router.get("/", response_model=list[BookingOut])
def all_bookings(
    include_deleted: bool = False,
    admin: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    return service.all_bookings(admin, include_deleted=include_deleted)


# =====================================================================
# BOOKING DETAILS
# =====================================================================
@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: int,
    include_deleted: bool = False,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(booking_id, user, include_deleted=include_deleted)


# =====================================================================
# ADMIN: SET STATUS (no transition rules)
# =====================================================================
@router.patch("/{booking_id}/status", response_model=dict)
def admin_set_status(
    booking_id: int,
    data: BookingStatusUpdate,
    admin: User = Depends(require_admin),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.admin_set_status(booking_id, admin, data.status)
    return {"message": "Booking status updated successfully", "booking": _out(booking)}


# =====================================================================
# CANCEL BOOKING
# =====================================================================
@router.patch("/{booking_id}/cancel", response_model=dict)
def cancel_booking(
    booking_id: int,
    data: BookingCancel | None = None,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    reason = data.reason if data else None
    booking = service.cancel_booking(booking_id, user, reason)
    return {"message": "Booking cancelled successfully", "booking": _out(booking)}


# =====================================================================
# QUICK STATUS UPDATE (transition table)
# =====================================================================
@router.patch("/{booking_id}/quick-status", response_model=dict)
def quick_update_status(
    booking_id: int,
    data: BookingStatusUpdate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.quick_update_status(booking_id, user, data.status)
    return {"message": f"Booking {booking.status} successfully", "booking": _out(booking)}


# =====================================================================
# UPDATE BOOKING
# =====================================================================
@router.patch("/{booking_id}", response_model=dict)
def update_booking(
    booking_id: int,
    data: BookingUpdate,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.update_booking(booking_id, user, data)
    return {"message": "Booking updated successfully", "booking": _out(booking)}


# =====================================================================
# DELETE BOOKING (soft)
# =====================================================================
@router.delete("/{booking_id}")
def delete_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    service.delete_booking(booking_id, user)
    return {"message": "Booking deleted successfully"}


# =====================================================================
# RECEIPT PDF
# =====================================================================
@router.get("/{booking_id}/receipt")
def download_receipt(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    booking = service.get_booking(booking_id, user)

    pdf = ReceiptRenderer().render(booking, user=booking.user)
    logger.bind(log_type="booking").info(f"Receipt generated | booking={booking.id}")

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="booking-receipt-{booking.id}.pdf"'},
    )
