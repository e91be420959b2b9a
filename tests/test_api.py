import json
from datetime import timedelta

from app.models.enums import NotificationKind, PaymentRecordStatus, PaymentStatus
from app.utils.time_utils import utcnow

from conftest import auth_header, sign_body, sign_payment


def _future(**delta):
    return (utcnow() + timedelta(**(delta or {"days": 5}))).isoformat()


def test_root(client):
    assert client.get("/").json() == {"message": "Backend running successfully"}


# ---------------- BOOKINGS ----------------
def test_create_and_list_bookings(client, traveller, activity, notifier):
    response = client.post(
        "/bookings/",
        json={"date": _future(), "time": "07:30", "activity_id": activity.id, "participants": 2},
        headers=auth_header(traveller),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Booking created successfully"
    assert body["booking"]["total_amount"] == 2460
    assert body["booking"]["pricing"]["serviceFee"] == 100
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["payment_status"] == "pending"
    assert notifier.kinds() == [NotificationKind.BOOKING_CONFIRMATION]

    mine = client.get("/bookings/my-bookings", headers=auth_header(traveller)).json()
    assert [b["id"] for b in mine] == [body["booking"]["id"]]


def test_create_rejects_invalid_contact(client, traveller, activity):
    response = client.post(
        "/bookings/",
        json={"date": _future(), "activity_id": activity.id,
              "contact": {"kind": "structured", "participants": []}},
        headers=auth_header(traveller),
    )

    assert response.status_code == 422


def test_requests_without_token_are_rejected(client):
    assert client.get("/bookings/my-bookings").status_code in (401, 403)


def test_admin_listing_requires_admin(client, traveller, admin, make_booking):
    make_booking(traveller)

    assert client.get("/bookings/", headers=auth_header(traveller)).status_code == 403
    assert len(client.get("/bookings/", headers=auth_header(admin)).json()) == 1


def test_domain_errors_carry_code(client, traveller, make_booking):
    booking = make_booking(traveller, date=utcnow() + timedelta(hours=2))

    missing = client.get("/bookings/9999", headers=auth_header(traveller))
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Booking not found", "error": "not_found"}

    late = client.patch(f"/bookings/{booking.id}/cancel", headers=auth_header(traveller))
    assert late.status_code == 400
    assert late.json()["error"] == "invalid_state"


def test_cancel_and_delete(client, traveller, make_booking):
    booking = make_booking(traveller)
    headers = auth_header(traveller)

    cancelled = client.patch(f"/bookings/{booking.id}/cancel", json={"reason": "Plans changed"}, headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["booking"]["cancellation_reason"] == "Plans changed"

    assert client.delete(f"/bookings/{booking.id}", headers=headers).json() == {"message": "Booking deleted successfully"}
    assert client.get(f"/bookings/{booking.id}", headers=headers).status_code == 404
    assert client.get(f"/bookings/{booking.id}?include_deleted=true", headers=headers).json()["deleted"] is True


def test_quick_status_and_admin_override(client, traveller, admin, make_booking):
    booking = make_booking(traveller)

    done = client.patch(f"/bookings/{booking.id}/quick-status", json={"status": "completed"},
                        headers=auth_header(traveller))
    assert done.json()["booking"]["status"] == "completed"

    blocked = client.patch(f"/bookings/{booking.id}/quick-status", json={"status": "cancelled"},
                           headers=auth_header(traveller))
    assert blocked.status_code == 400
    assert blocked.json() == {
        "detail": "Cannot change status from completed to cancelled",
        "error": "invalid_transition",
    }

    forced = client.patch(f"/bookings/{booking.id}/status", json={"status": "pending"}, headers=auth_header(admin))
    assert forced.json()["booking"]["status"] == "pending"


def test_receipt_is_a_pdf(client, traveller, activity, make_booking):
    booking = make_booking(traveller, activity_id=activity.id)

    response = client.get(f"/bookings/{booking.id}/receipt", headers=auth_header(traveller))

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")


# ---------------- PAYMENTS ----------------
def test_checkout_flow(client, db, traveller, make_booking, notifier):
    booking = make_booking(traveller)
    headers = auth_header(traveller)

    order = client.post("/payments/create-order", json={"booking_id": booking.id, "amount": 2460}, headers=headers)
    assert order.status_code == 201
    order = order.json()
    assert order["amount"] == 246000
    assert order["currency"] == "INR"
    assert order["key_id"] == "rzp_test_key"
    assert order["payment"]["status"] == PaymentRecordStatus.CREATED.value

    payload = {
        "order_id": order["order_id"],
        "payment_id": "pay_1",
        "signature": sign_payment(order["order_id"], "pay_1"),
        "booking_id": booking.id,
    }
    verified = client.post("/payments/verify", json=payload, headers=headers).json()
    assert verified["success"] is True
    assert verified["already_processed"] is False
    assert verified["booking"]["payment_status"] == PaymentStatus.PAID.value

    again = client.post("/payments/verify", json=payload, headers=headers).json()
    assert again["already_processed"] is True
    assert notifier.kinds().count(NotificationKind.PAYMENT_CONFIRMATION) == 1

    listed = client.get("/payments/", headers=headers).json()
    assert [p["provider_ref"] for p in listed] == [order["order_id"]]


def test_verify_with_bad_signature(client, traveller, make_booking, make_payment):
    booking = make_booking(traveller)
    make_payment(booking, "order_1")

    response = client.post(
        "/payments/verify",
        json={"order_id": "order_1", "payment_id": "pay_1", "signature": "bad", "booking_id": booking.id},
        headers=auth_header(traveller),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_signature"


def test_webhook_is_always_acknowledged(client, db, traveller, make_booking, make_payment):
    booking = make_booking(traveller)
    payment = make_payment(booking, "order_1")
    body = json.dumps({
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_hook", "order_id": "order_1"}}},
    }).encode()

    rejected = client.post("/payments/webhook", content=body, headers={"X-Razorpay-Signature": "forged"})
    assert rejected.status_code == 200
    assert rejected.json()["received"] is True
    db.refresh(payment)
    assert payment.status == PaymentRecordStatus.CREATED.value

    accepted = client.post("/payments/webhook", content=body, headers={"X-Razorpay-Signature": sign_body(body)})
    assert accepted.status_code == 200
    db.refresh(payment)
    db.refresh(booking)
    assert payment.status == PaymentRecordStatus.PAID.value
    assert booking.payment_status == PaymentStatus.PAID.value


def test_mark_paid_is_admin_only(client, traveller, admin, make_booking, make_payment):
    booking = make_booking(traveller)
    payment = make_payment(booking, "order_1")

    assert client.patch(f"/payments/{payment.id}/paid", headers=auth_header(traveller)).status_code == 403

    marked = client.patch(f"/payments/{payment.id}/paid", headers=auth_header(admin)).json()
    assert marked["payment"]["status"] == PaymentRecordStatus.PAID.value
    assert marked["booking"]["payment_status"] == PaymentStatus.PAID.value


# ---------------- ADMIN ----------------
def test_admin_reconcile_endpoint(client, traveller, admin, make_booking, make_payment):
    booking = make_booking(traveller)
    make_payment(booking, "order_1", status=PaymentRecordStatus.PAID.value, paymentId="pay_1")

    response = client.post("/admin/payments/reconcile", headers=auth_header(admin))

    assert response.json() == {"repaired": 1, "booking_ids": [booking.id]}


def test_admin_reminder_endpoint(client, traveller, admin, make_booking, notifier):
    booking = make_booking(traveller, date=utcnow() + timedelta(hours=24))

    response = client.post("/admin/jobs/reminders", headers=auth_header(admin))

    assert response.json() == {"reminded": 1, "booking_ids": [booking.id]}
    assert notifier.kinds() == [NotificationKind.BOOKING_REMINDER]


def test_token_role_must_match_account(client, traveller):
    from app.core.jwt import create_access_token

    forged = create_access_token({"sub": traveller.email, "role": "admin"})
    response = client.get("/bookings/my-bookings", headers={"Authorization": f"Bearer {forged}"})
    assert response.status_code == 401

    garbage = client.get("/bookings/my-bookings", headers={"Authorization": "Bearer not-a-jwt"})
    assert garbage.status_code == 401
