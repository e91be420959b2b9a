from fastapi import APIRouter, Depends, Header, Request, status

from app.core.dependencies import get_current_user, get_payment_service, require_admin
from app.models.user import User
from app.schemas.booking import BookingOut
from app.schemas.payment import (
    PaymentOrderCreate,
    PaymentOrderOut,
    PaymentOut,
    PaymentVerify,
    PaymentVerifyOut,
    WebhookAck,
)
from app.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


# =====================================================================
# CREATE ORDER
# =====================================================================
@router.post("/create-order", status_code=status.HTTP_201_CREATED, response_model=PaymentOrderOut)
def create_payment_order(
    data: PaymentOrderCreate,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment, order = service.create_order(user, data.booking_id, data.amount)
    return PaymentOrderOut(
        payment=PaymentOut.model_validate(payment),
        order_id=order["id"],
        amount=order["amount"],
        currency=order["currency"],
        key_id=service.gateway.key_id,
    )


# =====================================================================
# VERIFY PAYMENT (after checkout)
# =====================================================================
@router.post("/verify", response_model=PaymentVerifyOut)
def verify_payment(
    data: PaymentVerify,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment, booking, already_processed = service.verify_payment(
        data.order_id, data.payment_id, data.signature, data.booking_id
    )
    return PaymentVerifyOut(
        payment=PaymentOut.model_validate(payment),
        booking=BookingOut.model_validate(booking),
        already_processed=already_processed,
    )


# =====================================================================
# WEBHOOK (no auth; always acknowledged)
# =====================================================================
@router.post("/webhook", response_model=WebhookAck)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    service: PaymentService = Depends(get_payment_service),
):
    raw_body = await request.body()
    return service.receive_webhook(raw_body, x_razorpay_signature)


# =====================================================================
# LIST / DETAILS
# =====================================================================
@router.get("/", response_model=list[PaymentOut])
def list_payments(
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.list_payments(user)


@router.get("/booking/{booking_id}", response_model=list[PaymentOut])
def payments_for_booking(
    booking_id: int,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.payments_for_booking(booking_id, user)


@router.get("/{payment_id}", response_model=PaymentOut)
def get_payment(
    payment_id: int,
    user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.get_payment(payment_id, user)


# =====================================================================
# ADMIN: MARK PAID
# =====================================================================
@router.patch("/{payment_id}/paid", response_model=dict)
def mark_paid(
    payment_id: int,
    admin: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    payment, booking = service.mark_paid(payment_id, admin)
    return {
        "message": "Payment marked paid",
        "payment": PaymentOut.model_validate(payment).model_dump(mode="json"),
        "booking": BookingOut.model_validate(booking).model_dump(mode="json") if booking else None,
    }
