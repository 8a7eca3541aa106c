import json

import pytest

from veridie.models import Booking, BookingStatus, GuestBooking, Mentor, Purchase, PurchaseStatus
from veridie.webhook_security import create_webhook_signature


def post_event(client, event: dict, secret: str = "whsec_test"):
    body = json.dumps(event).encode()
    return client.post(
        "/api/webhooks/stripe",
        content=body,
        headers={"Stripe-Signature": create_webhook_signature(secret, body), "Content-Type": "application/json"},
    )


def checkout_event(event_type: str, **session) -> dict:
    data = {"id": "cs_test_1", "payment_status": "paid", "payment_intent": "pi_1", "metadata": {}}
    data.update(session)
    return {"id": "evt_1", "type": event_type, "data": {"object": data}}


@pytest.fixture
def pending_booking(db, student, mentor, service):
    booking = Booking(
        id="booking-1",
        client_id=student.id,
        mentor_id=mentor.id,
        service_id=service.id,
        date="2030-01-07",
        time="10:00 AM",
        amount=100.0,
        checkout_session_id="cs_test_1",
    )
    db.add(booking)
    db.commit()
    return booking


def test_bad_signature_is_rejected(client, pending_booking, db):
    response = post_event(
        client,
        checkout_event("checkout.session.completed", metadata={"bookingId": pending_booking.id}),
        secret="whsec_wrong",
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("Webhook Error:")
    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.PENDING


def test_completed_checkout_confirms_booking(client, pending_booking, db):
    response = post_event(
        client,
        checkout_event("checkout.session.completed", metadata={"bookingId": pending_booking.id}),
    )

    assert response.json() == {"received": True}
    db.expire_all()
    booking = db.get(Booking, pending_booking.id)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.payment_intent_id == "pi_1"


def test_booking_found_by_session_id_without_metadata(client, pending_booking, db):
    post_event(client, checkout_event("checkout.session.completed"))

    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.CONFIRMED


def test_replayed_event_does_not_change_settled_booking(client, pending_booking, db):
    pending_booking.status = BookingStatus.CANCELLED
    db.commit()

    response = post_event(
        client,
        checkout_event("checkout.session.completed", metadata={"bookingId": pending_booking.id}),
    )

    assert response.status_code == 200
    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.CANCELLED


def test_unpaid_checkout_leaves_booking_pending(client, pending_booking, db):
    post_event(
        client,
        checkout_event(
            "checkout.session.completed",
            payment_status="unpaid",
            metadata={"bookingId": pending_booking.id},
        ),
    )

    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.PENDING


def test_completed_checkout_confirms_guest_booking(client, db, mentor, service):
    guest = GuestBooking(
        id="guest-1",
        mentor_id=mentor.id,
        service_id=service.id,
        guest_name="Gina Guest",
        guest_email="gina@example.com",
    )
    db.add(guest)
    db.commit()

    post_event(
        client,
        checkout_event(
            "checkout.session.completed",
            id="cs_guest",
            metadata={"bookingId": guest.id, "isGuestBooking": "true"},
        ),
    )

    db.expire_all()
    stored = db.get(GuestBooking, guest.id)
    assert stored.status == BookingStatus.CONFIRMED
    assert stored.checkout_session_id == "cs_guest"


def test_completed_checkout_completes_purchase(client, db, student, consultant, package):
    purchase = Purchase(id="purchase-1", user_id=student.id, package_id=package.id, consultant_id=consultant.id)
    db.add(purchase)
    db.commit()

    post_event(
        client,
        checkout_event(
            "checkout.session.completed",
            amount_total=25000,
            metadata={"purchase_id": purchase.id, "package_id": package.id},
        ),
    )

    db.expire_all()
    stored = db.get(Purchase, purchase.id)
    assert stored.status == PurchaseStatus.COMPLETED
    assert stored.amount_total == 25000
    assert stored.stripe_payment_intent_id == "pi_1"


def test_expired_checkout_cancels_pending_booking(client, pending_booking, db):
    post_event(
        client,
        checkout_event("checkout.session.expired", payment_status="unpaid", metadata={"bookingId": pending_booking.id}),
    )

    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.CANCELLED


def test_expired_checkout_keeps_confirmed_booking(client, pending_booking, db):
    pending_booking.status = BookingStatus.CONFIRMED
    db.commit()

    post_event(client, checkout_event("checkout.session.expired", metadata={"bookingId": pending_booking.id}))

    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.CONFIRMED


def test_account_updated_syncs_connect_flags(client, db, mentor):
    event = {
        "id": "evt_acct",
        "type": "account.updated",
        "data": {
            "object": {
                "id": "acct_mentor1",
                "details_submitted": True,
                "charges_enabled": True,
                "payouts_enabled": True,
            }
        },
    }

    response = post_event(client, event)

    assert response.status_code == 200
    db.expire_all()
    stored = db.get(Mentor, mentor.id)
    assert stored.stripe_connect_details_submitted is True
    assert stored.stripe_connect_payouts_enabled is True


def test_unknown_event_is_acknowledged(client):
    response = post_event(client, {"id": "evt_x", "type": "invoice.paid", "data": {"object": {}}})
    assert response.json() == {"received": True}


def test_missing_signature_header_is_rejected(client, pending_booking, db):
    body = json.dumps(checkout_event("checkout.session.completed")).encode()

    response = client.post("/api/webhooks/stripe", content=body, headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.PENDING


def payment_failed_event(**intent) -> dict:
    data = {"id": "pi_declined", "object": "payment_intent", "metadata": {}}
    data.update(intent)
    return {"id": "evt_fail", "type": "payment_intent.payment_failed", "data": {"object": data}}


def test_failed_payment_marks_booking_failed(client, pending_booking, db):
    pending_booking.payment_intent_id = "pi_declined"
    db.commit()

    response = post_event(client, payment_failed_event())

    assert response.json() == {"received": True}
    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.FAILED


def test_failed_payment_found_by_intent_metadata(client, db, mentor, service):
    guest = GuestBooking(
        id="guest-2",
        mentor_id=mentor.id,
        service_id=service.id,
        guest_name="Gina Guest",
        guest_email="gina@example.com",
    )
    db.add(guest)
    db.commit()

    post_event(client, payment_failed_event(metadata={"bookingId": guest.id, "isGuestBooking": "true"}))

    db.expire_all()
    stored = db.get(GuestBooking, guest.id)
    assert stored.status == BookingStatus.FAILED
    assert stored.payment_intent_id == "pi_declined"


def test_failed_payment_does_not_undo_confirmation(client, pending_booking, db):
    pending_booking.status = BookingStatus.CONFIRMED
    pending_booking.payment_intent_id = "pi_declined"
    db.commit()

    post_event(client, payment_failed_event())

    db.expire_all()
    assert db.get(Booking, pending_booking.id).status == BookingStatus.CONFIRMED
