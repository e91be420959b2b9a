from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Payment axis of a booking, independent of ``BookingStatus``."""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"


class PaymentRecordStatus(str, Enum):
    """Lifecycle of a single gateway order attempt."""
    CREATED = "created"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class ContactKind(str, Enum):
    STRUCTURED = "structured"
    SNAPSHOT = "snapshot"


class UserRole(str, Enum):
    TRAVELLER = "traveller"
    GUIDE = "guide"
    INSTRUCTOR = "instructor"
    ADVISOR = "advisor"
    ADMIN = "admin"


class NotificationKind(str, Enum):
    BOOKING_CONFIRMATION = "booking_confirmation"
    BOOKING_CANCELLATION = "booking_cancellation"
    PAYMENT_CONFIRMATION = "payment_confirmation"
    BOOKING_REMINDER = "booking_reminder"


# status -> statuses reachable through a regular status update
ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
    BookingStatus.CONFIRMED: (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
    BookingStatus.COMPLETED: (),
    BookingStatus.CANCELLED: (),
}

PAYMENT_PROVIDER = "razorpay"
