from datetime import datetime, timedelta

import pytest
import stripe

from veridie.models import Booking, BookingStatus, GuestBooking, Profile
from veridie.security_utils import encrypt_token
from veridie.services.stripe_service import StripeNotConfiguredError

from .conftest import auth_headers, stripe_object

CHECKOUT = {"mentorId": "mentor-1", "serviceId": "service-1", "date": "2030-01-07", "time": "10:00 AM"}


@pytest.fixture
def checkout_session(stripe_service):
    stripe_service.create_checkout_session.return_value = stripe_object(
        {"id": "cs_test_1", "url": "https://checkout.stripe.com/c/pay/cs_test_1", "payment_intent": None}
    )
    return stripe_service


@pytest.fixture
def booking(db, student, mentor, service):
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


def paid_session(booking_id="booking-1", **extra):
    data = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "payment_intent": "pi_1",
        "amount_total": 10000,
        "metadata": {"bookingId": booking_id},
    }
    data.update(extra)
    return stripe_object(data)


def test_checkout_creates_pending_booking(client, checkout_session, db, student_headers, service):
    response = client.post("/api/stripe/create-checkout", json=CHECKOUT, headers=student_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["url"] == "https://checkout.stripe.com/c/pay/cs_test_1"

    db.expire_all()
    booking = db.get(Booking, body["bookingId"])
    assert booking.status == BookingStatus.PENDING
    assert booking.checkout_session_id == "cs_test_1"
    assert booking.amount == 100.0

    kwargs = checkout_session.create_checkout_session.call_args.kwargs
    assert kwargs["amount_cents"] == 10000
    assert kwargs["destination_account"] == "acct_mentor1"
    assert kwargs["price_id"] == "price_1"
    assert kwargs["metadata"]["bookingId"] == booking.id
    assert kwargs["metadata"]["userId"] == "student-1"
    assert kwargs["success_url"] == (
        f"http://frontend.test/booking/success?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}"
    )
    assert kwargs["cancel_url"] == "http://frontend.test/mentors/mentor-1?canceled=true"


def test_checkout_requires_authentication(client, service):
    response = client.post("/api/stripe/create-checkout", json=CHECKOUT)
    assert response.status_code == 401


def test_checkout_unknown_service(client, checkout_session, student_headers, service):
    response = client.post(
        "/api/stripe/create-checkout", json={**CHECKOUT, "serviceId": "missing"}, headers=student_headers
    )
    assert response.status_code == 404
    checkout_session.create_checkout_session.assert_not_called()


def test_checkout_without_connect_account(client, checkout_session, db, mentor, service, student_headers):
    mentor.stripe_connect_account_id = None
    db.commit()

    response = client.post("/api/stripe/create-checkout", json=CHECKOUT, headers=student_headers)

    assert response.status_code == 400
    assert response.json()["error"] == "Mentor payment setup incomplete"
    assert db.query(Booking).count() == 0


def test_mentor_cannot_book_themselves(client, checkout_session, mentor_headers, service):
    response = client.post("/api/stripe/create-checkout", json=CHECKOUT, headers=mentor_headers)
    assert response.status_code == 400


def test_checkout_with_bad_date(client, checkout_session, student_headers, service):
    response = client.post(
        "/api/stripe/create-checkout", json={**CHECKOUT, "date": "next monday"}, headers=student_headers
    )
    assert response.status_code == 400


def test_stripe_failure_marks_booking_failed(client, stripe_service, db, student_headers, service):
    stripe_service.create_checkout_session.side_effect = stripe.APIConnectionError("Network down")

    response = client.post("/api/stripe/create-checkout", json=CHECKOUT, headers=student_headers)

    assert response.status_code == 502
    db.expire_all()
    assert db.query(Booking).one().status == BookingStatus.FAILED


def test_stripe_not_configured(client, stripe_service, student_headers, service):
    stripe_service.create_checkout_session.side_effect = StripeNotConfiguredError("no key")
    response = client.post("/api/stripe/create-checkout", json=CHECKOUT, headers=student_headers)
    assert response.status_code == 500


def test_guest_checkout(client, checkout_session, db, service):
    response = client.post(
        "/api/stripe/guest-checkout",
        json={**CHECKOUT, "guestName": "Gina Guest", "guestEmail": "gina@example.com"},
    )

    assert response.status_code == 200
    guest = db.get(GuestBooking, response.json()["bookingId"])
    assert guest.guest_email == "gina@example.com"
    assert guest.status == BookingStatus.PENDING

    kwargs = checkout_session.create_checkout_session.call_args.kwargs
    assert kwargs["metadata"]["isGuestBooking"] == "true"
    assert kwargs["customer_email"] == "gina@example.com"
    assert kwargs["client_reference_id"] == guest.id
    assert kwargs["success_url"].endswith("&guest=true")


def test_guest_checkout_requires_valid_email(client, checkout_session, service):
    response = client.post(
        "/api/stripe/guest-checkout",
        json={**CHECKOUT, "guestName": "Gina", "guestEmail": "not-an-email"},
    )
    assert response.status_code == 400


def test_list_bookings_for_client_and_mentor(client, booking, student_headers, mentor_headers):
    as_client = client.get("/api/bookings", headers=student_headers)
    as_mentor = client.get("/api/bookings", headers=mentor_headers)

    assert [b["id"] for b in as_client.json()] == [booking.id]
    assert [b["id"] for b in as_mentor.json()] == [booking.id]
    assert as_client.json()[0]["mentorName"] == "Maya Mentor"
    assert as_client.json()[0]["serviceName"] == "Essay Review"


def test_list_bookings_status_filter(client, booking, student_headers):
    assert client.get("/api/bookings?status=confirmed", headers=student_headers).json() == []
    assert len(client.get("/api/bookings?status=pending", headers=student_headers).json()) == 1
    assert client.get("/api/bookings?status=bogus", headers=student_headers).status_code == 400


def test_get_booking_is_private(client, db, booking, student_headers):
    db.add(Profile(id="stranger", email="stranger@example.com", name="Stranger"))
    db.commit()

    assert client.get(f"/api/booking/{booking.id}", headers=student_headers).status_code == 200
    forbidden = client.get(f"/api/booking/{booking.id}", headers=auth_headers("stranger", "stranger@example.com"))
    assert forbidden.status_code == 403
    assert client.get("/api/booking/missing", headers=student_headers).status_code == 404


def test_booking_details_by_session(client, stripe_service, booking):
    stripe_service.retrieve_checkout_session.return_value = paid_session(amount_total=9000)

    response = client.get("/api/booking/details?session_id=cs_test_1")

    assert response.status_code == 200
    assert response.json()["id"] == booking.id
    assert response.json()["amount"] == 90.0


def test_booking_details_unknown_session(client, stripe_service):
    stripe_service.retrieve_checkout_session.side_effect = stripe.InvalidRequestError(
        "No such checkout.session", "id"
    )
    response = client.get("/api/booking/details?session_id=cs_missing")
    assert response.status_code == 404


def test_confirm_waits_for_webhook(client, stripe_service, db, booking):
    stripe_service.retrieve_checkout_session.return_value = paid_session()

    response = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})

    assert response.status_code == 202
    assert response.json()["success"] is False
    db.expire_all()
    # confirmation is left to the Stripe webhook
    assert db.get(Booking, booking.id).status == BookingStatus.PENDING


def test_confirm_rejects_unpaid_or_mismatched_session(client, stripe_service, booking):
    stripe_service.retrieve_checkout_session.return_value = paid_session(payment_status="unpaid")
    unpaid = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})
    assert unpaid.status_code == 400

    stripe_service.retrieve_checkout_session.return_value = paid_session(booking_id="someone-elses")
    mismatched = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})
    assert mismatched.status_code == 400


def test_confirm_cancelled_booking_conflicts(client, stripe_service, db, booking):
    booking.status = BookingStatus.CANCELLED
    db.commit()
    stripe_service.retrieve_checkout_session.return_value = paid_session()

    response = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})

    assert response.status_code == 409


def test_confirmed_booking_gets_tagged_scheduling_link(client, stripe_service, calendly, db, booking, mentor, service):
    booking.status = BookingStatus.CONFIRMED
    service.calendly_event_type_uri = "https://api.calendly.com/event_types/et-1"
    mentor.calendly_access_token = encrypt_token("access-live")
    mentor.calendly_refresh_token = encrypt_token("refresh-live")
    mentor.calendly_token_expires_at = datetime.utcnow() + timedelta(days=1)
    db.commit()
    stripe_service.retrieve_checkout_session.return_value = paid_session()
    calendly.create_scheduling_link.return_value = {"resource": {"booking_url": "https://calendly.com/d/abc-123"}}

    response = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["schedulingUrl"] == "https://calendly.com/d/abc-123?utm_content=booking-1"
    calendly.create_scheduling_link.assert_awaited_once_with(
        "access-live", "https://api.calendly.com/event_types/et-1"
    )
    db.expire_all()
    assert db.get(Booking, booking.id).calendly_scheduling_url.endswith("utm_content=booking-1")


def test_confirmed_booking_without_calendly(client, stripe_service, db, booking):
    booking.status = BookingStatus.CONFIRMED
    db.commit()
    stripe_service.retrieve_checkout_session.return_value = paid_session()

    response = client.post("/api/booking/confirm", json={"sessionId": "cs_test_1", "bookingId": booking.id})

    assert response.status_code == 200
    assert response.json()["schedulingUrl"] is None
