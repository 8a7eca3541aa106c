import json

import pytest

from veridie.models import Booking, BookingStatus, GuestBooking
from veridie.routes.calendly_webhooks import booking_id_from_invitee
from veridie.webhook_security import create_webhook_signature

EVENT_URI = "https://api.calendly.com/scheduled_events/ev-1"


def post_event(client, event: dict, secret: str = "calendly-signing-key"):
    body = json.dumps(event).encode()
    return client.post(
        "/api/webhooks/calendly",
        content=body,
        headers={
            "Calendly-Webhook-Signature": create_webhook_signature(secret, body),
            "Content-Type": "application/json",
        },
    )


@pytest.fixture
def confirmed_booking(db, student, mentor, service):
    booking = Booking(
        id="booking-1",
        client_id=student.id,
        mentor_id=mentor.id,
        service_id=service.id,
        status=BookingStatus.CONFIRMED,
    )
    db.add(booking)
    db.commit()
    return booking


def test_booking_id_from_utm_content_or_question():
    assert booking_id_from_invitee({"tracking": {"utm_content": "b-1"}}) == "b-1"
    assert (
        booking_id_from_invitee(
            {"questions_and_answers": [{"question": "Your Booking ID", "answer": " b-2 "}]}
        )
        == "b-2"
    )
    assert booking_id_from_invitee({"tracking": {}, "questions_and_answers": []}) is None


def test_invitee_created_links_event(client, confirmed_booking, db):
    response = post_event(
        client,
        {
            "event": "invitee.created",
            "payload": {
                "tracking": {"utm_content": confirmed_booking.id},
                "scheduled_event": {
                    "uri": EVENT_URI,
                    "start_time": "2030-01-07T15:00:00.000000Z",
                    "location": {"type": "zoom", "join_url": "https://zoom.us/j/123"},
                },
            },
        },
    )

    assert response.json() == {"received": True}
    db.expire_all()
    booking = db.get(Booking, confirmed_booking.id)
    assert booking.calendly_event_uri == EVENT_URI
    assert booking.meeting_url == "https://zoom.us/j/123"
    assert booking.date == "2030-01-07"
    assert booking.time == "3:00 PM"
    assert booking.status == BookingStatus.CONFIRMED


def test_invitee_created_does_not_confirm_unpaid_booking(client, confirmed_booking, db):
    confirmed_booking.status = BookingStatus.PENDING
    db.commit()

    post_event(
        client,
        {
            "event": "invitee.created",
            "payload": {"tracking": {"utm_content": confirmed_booking.id}, "scheduled_event": {"uri": EVENT_URI}},
        },
    )

    db.expire_all()
    assert db.get(Booking, confirmed_booking.id).status == BookingStatus.PENDING


def test_invitee_canceled_cancels_booking(client, confirmed_booking, db):
    confirmed_booking.calendly_event_uri = EVENT_URI
    db.commit()

    post_event(client, {"event": "invitee.canceled", "payload": {"scheduled_event": {"uri": EVENT_URI}}})

    db.expire_all()
    assert db.get(Booking, confirmed_booking.id).status == BookingStatus.CANCELLED


def test_unknown_booking_is_acknowledged(client):
    response = post_event(
        client,
        {"event": "invitee.created", "payload": {"tracking": {"utm_content": "missing"}}},
    )
    assert response.status_code == 200


def test_bad_signature_is_unauthorized(client):
    response = post_event(client, {"event": "invitee.created", "payload": {}}, secret="wrong")
    assert response.status_code == 401


def test_invalid_json_is_rejected(client):
    body = b"not json"
    response = client.post(
        "/api/webhooks/calendly",
        content=body,
        headers={"Calendly-Webhook-Signature": create_webhook_signature("calendly-signing-key", body)},
    )
    assert response.status_code == 400


@pytest.fixture
def guest_booking(db, mentor, service):
    booking = GuestBooking(
        id="guest-1",
        mentor_id=mentor.id,
        service_id=service.id,
        guest_name="Gina Guest",
        guest_email="gina@example.com",
        status=BookingStatus.CONFIRMED,
    )
    db.add(booking)
    db.commit()
    return booking


def test_invitee_created_links_guest_booking(client, guest_booking, db):
    post_event(
        client,
        {
            "event": "invitee.created",
            "payload": {
                "tracking": {"utm_content": guest_booking.id},
                "scheduled_event": {
                    "uri": EVENT_URI,
                    "start_time": "2030-01-08T09:30:00.000000Z",
                    "location": {"join_url": "https://zoom.us/j/456"},
                },
            },
        },
    )

    db.expire_all()
    stored = db.get(GuestBooking, guest_booking.id)
    assert stored.calendly_event_uri == EVENT_URI
    assert stored.date == "2030-01-08"
    assert stored.time == "9:30 AM"


def test_invitee_canceled_cancels_guest_booking(client, guest_booking, db):
    guest_booking.calendly_event_uri = EVENT_URI
    db.commit()

    post_event(client, {"event": "invitee.canceled", "payload": {"scheduled_event": {"uri": EVENT_URI}}})

    db.expire_all()
    assert db.get(GuestBooking, guest_booking.id).status == BookingStatus.CANCELLED
