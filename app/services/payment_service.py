"""Payment orders, verification, webhooks and reconciliation.

Payment and Booking are written one after the other, never in one
transaction: the Payment is written first because it records whether money
was captured, then the linked Booking. ``reconcile`` repairs bookings left
behind when a process dies between the two writes.

"Already paid" is a no-op guard everywhere, so verify and webhook calls can
arrive in any order and any number of times.
"""

import json
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ForbiddenError,
    InvalidSignatureError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.logging_config import get_logger
from app.models.booking import Booking
from app.models.enums import (
    PAYMENT_PROVIDER,
    BookingStatus,
    NotificationKind,
    PaymentRecordStatus,
    PaymentStatus,
)
from app.models.payment import Payment
from app.models.user import User
from app.utils.pricing import round_half_up
from app.utils.razorpay_client import RazorpayGateway
from app.utils.time_utils import epoch_millis, utcnow

logger = get_logger()

EVENT_PAYMENT_CAPTURED = "payment.captured"
EVENT_PAYMENT_FAILED = "payment.failed"


class PaymentService:

    def __init__(self, db: Session, gateway: RazorpayGateway, notifier=None, background_tasks=None):
        self.db = db
        self.gateway = gateway
        self.notifier = notifier
        self.background_tasks = background_tasks

    # ---------------------------------------------------------------------
    # HELPERS
    # ---------------------------------------------------------------------
    def _payment_by_order(self, order_id: Optional[str]) -> Optional[Payment]:
        # populate_existing: the paid guard must see the row as it is now
        if not order_id:
            return None
        return (
            self.db.query(Payment)
            .populate_existing()
            .filter(Payment.provider_ref == order_id)
            .first()
        )

    def _linked_booking(self, booking_id) -> Optional[Booking]:
        if booking_id is None:
            return None
        return (
            self.db.query(Booking)
            .populate_existing()
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def _apply_paid_to_booking(booking: Booking, payment_id: Optional[str]) -> bool:
        """Mirror a captured payment onto the booking. False if it already was."""
        if booking.payment_status == PaymentStatus.PAID.value:
            return False
        booking.status = BookingStatus.CONFIRMED.value
        booking.payment_status = PaymentStatus.PAID.value
        if payment_id:
            booking.payment_id = payment_id
        return True

    def _notify_paid(self, booking: Booking) -> None:
        if self.notifier is None:
            return
        self.notifier.dispatch(
            NotificationKind.PAYMENT_CONFIRMATION,
            booking,
            user=booking.user,
            background_tasks=self.background_tasks,
        )

    # ---------------------------------------------------------------------
    # CREATE ORDER
    # ---------------------------------------------------------------------
    def create_order(self, actor: User, booking_id: int, amount: float) -> Tuple[Payment, dict]:
        if amount is None or amount <= 0:
            raise ValidationFailedError("amount must be positive")

        booking = (
            self.db.query(Booking)
            .filter(Booking.id == booking_id, Booking.deleted.is_(False))
            .first()
        )
        if booking is None:
            raise NotFoundError("Booking not found")

        if booking.user_id != actor.id:
            raise ForbiddenError("Not authorized to pay for this booking")

        if booking.payment_status == PaymentStatus.PAID.value:
            raise InvalidStateError("Booking is already paid")

        receipt = f"booking_{booking_id}_{epoch_millis(utcnow())}"

        # Raises GatewayError; nothing is persisted for a failed order
        order = self.gateway.create_order(
            amount_minor=round_half_up(amount * 100),
            currency=settings.PAYMENT_CURRENCY,
            receipt=receipt,
        )

        payment = Payment(
            amount=amount,
            currency=order.get("currency", settings.PAYMENT_CURRENCY),
            provider=PAYMENT_PROVIDER,
            status=PaymentRecordStatus.CREATED.value,
            provider_ref=order["id"],
            meta={
                "bookingId": booking.id,
                "receipt": receipt,
                "razorpayOrderId": order["id"],
            },
        )
        self.db.add(payment)
        self.db.commit()
        self.db.refresh(payment)

        logger.bind(log_type="payment").info(
            f"Payment order created | payment={payment.id} | order={payment.provider_ref} | booking={booking.id}"
        )
        return payment, order

    # ---------------------------------------------------------------------
    # VERIFY (client reported, after checkout)
    # ---------------------------------------------------------------------
    def verify_payment(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        booking_id: int,
    ) -> Tuple[Payment, Booking, bool]:
        """Returns ``(payment, booking, already_processed)``."""
        if not self.gateway.verify_payment_signature(order_id, payment_id, signature):
            logger.bind(log_type="payment").warning(
                f"Invalid payment signature | order={order_id} | payment={payment_id}"
            )
            raise InvalidSignatureError("Invalid payment signature")

        payment = self._payment_by_order(order_id)
        if payment is None:
            raise NotFoundError("Payment record not found")

        if payment.booking_id is not None and payment.booking_id != booking_id:
            raise ValidationFailedError("Payment order does not belong to this booking")

        already_processed = payment.status == PaymentRecordStatus.PAID.value
        if not already_processed:
            payment.status = PaymentRecordStatus.PAID.value
            payment.meta = {
                **(payment.meta or {}),
                "paymentId": payment_id,
                "signature": signature,
                "paidAt": utcnow().isoformat(),
            }
            self.db.commit()

        booking = self._linked_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")

        booking_changed = self._apply_paid_to_booking(booking, payment_id)
        if booking_changed:
            self.db.commit()
            self.db.refresh(booking)
            self._notify_paid(booking)

        self.db.refresh(payment)
        logger.bind(log_type="payment").info(
            f"Payment verified | order={order_id} | booking={booking.id} | already_processed={already_processed}"
        )
        return payment, booking, already_processed and not booking_changed

    # ---------------------------------------------------------------------
    # WEBHOOK
    # ---------------------------------------------------------------------
    def receive_webhook(self, raw_body: bytes, signature: Optional[str]) -> dict:
        """Entry point for gateway pushes. Always returns an acknowledgement.

        The gateway retries every non-2xx answer, so nothing raised while
        processing ever reaches it; failures are logged for manual follow-up.
        """
        event, order_id = None, None
        try:
            if not self.gateway.has_webhook_secret:
                logger.bind(log_type="payment").warning("Razorpay webhook secret not configured; event ignored")
                return {"received": True}

            if not self.gateway.verify_webhook_signature(raw_body, signature):
                logger.bind(log_type="payment").warning("Webhook signature mismatch; event ignored")
                return {"received": True}

            body = json.loads(raw_body)
            event = body.get("event")
            payload = body.get("payload") or {}
            order_id = ((payload.get("payment") or {}).get("entity") or {}).get("order_id")

            self.apply_webhook_event(event, payload)
        except Exception as e:
            self.db.rollback()
            logger.bind(log_type="payment").exception(
                f"Webhook processing error | event={event} | order={order_id} | {e}"
            )
            return {"received": True, "error": str(e)}

        return {"received": True}

    def apply_webhook_event(self, event: Optional[str], payload: dict) -> bool:
        """Apply one gateway event. Returns False when nothing was changed."""
        entity = ((payload or {}).get("payment") or {}).get("entity") or {}
        order_id = entity.get("order_id")
        gateway_payment_id = entity.get("id")

        logger.bind(log_type="payment").info(f"Webhook received | event={event} | order={order_id}")

        if event not in (EVENT_PAYMENT_CAPTURED, EVENT_PAYMENT_FAILED):
            logger.bind(log_type="payment").info(f"Webhook event ignored | event={event}")
            return False

        payment = self._payment_by_order(order_id)
        if payment is None:
            logger.bind(log_type="payment").warning(f"Webhook for unknown order | event={event} | order={order_id}")
            return False

        if payment.status == PaymentRecordStatus.PAID.value:
            logger.bind(log_type="payment").info(f"Webhook duplicate, payment already paid | order={order_id}")
            return False

        if event == EVENT_PAYMENT_FAILED:
            payment.status = PaymentRecordStatus.FAILED.value
            payment.meta = {
                **(payment.meta or {}),
                "failureReason": entity.get("error_reason") or entity.get("error_description"),
                "webhookProcessedAt": utcnow().isoformat(),
            }
            self.db.commit()
            logger.bind(log_type="payment").info(f"Payment failed via webhook | order={order_id}")
            return True

        payment.status = PaymentRecordStatus.PAID.value
        payment.meta = {
            **(payment.meta or {}),
            "paymentId": gateway_payment_id,
            "webhookProcessedAt": utcnow().isoformat(),
        }
        self.db.commit()

        booking = self._linked_booking(payment.booking_id)
        if booking is not None and self._apply_paid_to_booking(booking, gateway_payment_id):
            self.db.commit()
            self.db.refresh(booking)
            logger.bind(log_type="payment").info(f"Booking updated via webhook | booking={booking.id}")
            self._notify_paid(booking)

        return True

    # ---------------------------------------------------------------------
    # ADMIN
    # ---------------------------------------------------------------------
    def mark_paid(self, payment_pk: int, actor: User) -> Tuple[Payment, Optional[Booking]]:
        if not actor.is_admin:
            raise ForbiddenError("Admins only")

        payment = self.db.query(Payment).filter(Payment.id == payment_pk).first()
        if payment is None:
            raise NotFoundError("Payment not found")

        payment.status = PaymentRecordStatus.PAID.value
        payment.meta = {
            **(payment.meta or {}),
            "manuallyMarkedBy": actor.id,
            "manuallyMarkedAt": utcnow().isoformat(),
        }
        self.db.commit()

        booking = self._linked_booking(payment.booking_id)
        if booking is not None:
            booking.payment_status = PaymentStatus.PAID.value
            booking.status = BookingStatus.CONFIRMED.value
            self.db.commit()
            self.db.refresh(booking)

        self.db.refresh(payment)
        logger.bind(log_type="admin").info(
            f"Payment manually marked paid | payment={payment.id} | booking={payment.booking_id} | admin={actor.email}"
        )
        return payment, booking

    def reconcile(self) -> List[int]:
        """Repair bookings whose payment was captured but never mirrored."""
        rows = (
            self.db.query(Payment, Booking)
            .join(Booking, Booking.id == Payment.meta["bookingId"].as_integer())
            .filter(
                Payment.status == PaymentRecordStatus.PAID.value,
                Booking.payment_status != PaymentStatus.PAID.value,
            )
            .all()
        )

        repaired = []
        for payment, booking in rows:
            if self._apply_paid_to_booking(booking, (payment.meta or {}).get("paymentId")):
                repaired.append(booking.id)

        if repaired:
            self.db.commit()

        logger.bind(log_type="payment").info(f"Reconciliation sweep | repaired={repaired}")
        return repaired

    # ---------------------------------------------------------------------
    # READS
    # ---------------------------------------------------------------------
    def get_payment(self, payment_pk: int, actor: User) -> Payment:
        payment = self.db.query(Payment).filter(Payment.id == payment_pk).first()
        if payment is None:
            raise NotFoundError("Payment not found")

        booking = self._linked_booking(payment.booking_id)
        if booking is not None and booking.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Not authorized to view this payment")
        return payment

    def list_payments(self, actor: User) -> List[Payment]:
        query = self.db.query(Payment)

        if not actor.is_admin:
            own_ids = [
                row.id for row in
                self.db.query(Booking.id).filter(Booking.user_id == actor.id, Booking.deleted.is_(False)).all()
            ]
            if not own_ids:
                return []
            query = query.filter(Payment.meta["bookingId"].as_integer().in_(own_ids))

        return query.order_by(Payment.created_at.desc(), Payment.id.desc()).all()

    def payments_for_booking(self, booking_id: int, actor: User) -> List[Payment]:
        booking = self._linked_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        if booking.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Not authorized to view payments for this booking")

        return (
            self.db.query(Payment)
            .filter(Payment.meta["bookingId"].as_integer() == booking_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .all()
        )
