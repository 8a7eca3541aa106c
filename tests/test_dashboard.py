from datetime import datetime, timedelta

from veridie.models import Booking, BookingStatus, Mentor
from veridie.security_utils import decrypt_token, encrypt_token


def test_dashboard_counts(client, db, mentor, mentor_headers, service, student):
    db.add_all(
        [
            Booking(client_id=student.id, mentor_id=mentor.id, service_id=service.id, status=BookingStatus.PENDING),
            Booking(client_id=student.id, mentor_id=mentor.id, service_id=service.id, status=BookingStatus.CONFIRMED),
            Booking(client_id=student.id, mentor_id=mentor.id, service_id=service.id, status=BookingStatus.CONFIRMED),
        ]
    )
    db.commit()

    response = client.get("/api/dashboard", headers=mentor_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["counts"] == {
        "services": 1,
        "bookings": 3,
        "pendingBookings": 1,
        "confirmedBookings": 2,
        "completedBookings": 0,
    }
    assert body["calendly"]["state"] == "disconnected"
    assert body["calendly"]["refreshScheduled"] is False
    assert body["stripe"]["connected"] is True
    assert body["stripe"]["chargesEnabled"] is True


def test_dashboard_refreshes_expiring_token_in_background(client, calendly, db, mentor, mentor_headers):
    mentor.calendly_access_token = encrypt_token("access-old")
    mentor.calendly_refresh_token = encrypt_token("refresh-old")
    mentor.calendly_token_expires_at = datetime.utcnow() + timedelta(hours=2)
    db.commit()
    calendly.refresh_access_token.return_value = {
        "access_token": "access-new",
        "refresh_token": "refresh-new",
        "expires_in": 7200,
    }

    response = client.get("/api/dashboard", headers=mentor_headers)

    assert response.status_code == 200
    assert response.json()["calendly"]["state"] == "expiring"
    assert response.json()["calendly"]["refreshScheduled"] is True

    # TestClient runs background tasks before returning
    calendly.refresh_access_token.assert_awaited_once_with("refresh-old")
    db.expire_all()
    assert decrypt_token(db.get(Mentor, mentor.id).calendly_access_token) == "access-new"


def test_dashboard_is_for_mentors_only(client, student_headers):
    response = client.get("/api/dashboard", headers=student_headers)
    assert response.status_code == 404
