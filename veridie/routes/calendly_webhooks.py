"""
Calendly Webhook Routes
Links scheduled Calendly events to paid bookings
"""

import json
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import CALENDLY_WEBHOOK_SECRET
from ..database import get_db
from ..domain.bookings.repository import AnyBooking, BookingRepository
from ..models import Booking, BookingStatus
from ..services.calendly_service import format_slot_time, parse_calendly_time
from ..webhook_security import WebhookSignatureError, verify_calendly_webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

BOOKING_ID_QUESTION = "booking id"


def booking_id_from_invitee(payload: dict[str, Any]) -> Optional[str]:
    """Booking id from utm_content, else from a "Booking ID" custom question"""
    tracking = payload.get("tracking") or {}
    if tracking.get("utm_content"):
        return tracking["utm_content"]

    for qa in payload.get("questions_and_answers") or []:
        if BOOKING_ID_QUESTION in (qa.get("question") or "").lower() and qa.get("answer"):
            return qa["answer"].strip()
    return None


def _event_uri(payload: dict[str, Any]) -> Optional[str]:
    scheduled_event = payload.get("scheduled_event") or {}
    event = payload.get("event")
    return scheduled_event.get("uri") or (event if isinstance(event, str) else None)


@router.post("/calendly")
async def handle_calendly_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Supported events: invitee.created, invitee.canceled

    Deliveries for bookings we do not know are acknowledged so Calendly
    stops retrying them.
    """
    if not CALENDLY_WEBHOOK_SECRET:
        logger.error("❌ CALENDLY_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    try:
        body = await verify_calendly_webhook(request, CALENDLY_WEBHOOK_SECRET)
    except WebhookSignatureError as e:
        raise HTTPException(status_code=401, detail=f"Invalid webhook signature: {e}") from e

    try:
        data = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    event_type = data.get("event")
    payload = data.get("payload") or {}
    logger.info(f"📥 Received Calendly webhook: {event_type}")

    if event_type == "invitee.created":
        handle_invitee_created(payload, db)
    elif event_type == "invitee.canceled":
        handle_invitee_canceled(payload, db)
    else:
        logger.debug(f"Unhandled Calendly event type: {event_type}")

    return {"received": True}


def handle_invitee_created(payload: dict[str, Any], db: Session) -> Optional[AnyBooking]:
    """Attach the scheduled event to its booking; status stays as the payment left it"""
    booking_id = booking_id_from_invitee(payload)
    if not booking_id:
        logger.warning("⚠️ invitee.created without a booking reference")
        return None

    booking = BookingRepository.get_booking(db, booking_id) or BookingRepository.get_guest_booking(db, booking_id)
    if not booking:
        logger.warning(f"⚠️ invitee.created for unknown booking {booking_id}")
        return None

    scheduled_event = payload.get("scheduled_event") or {}
    booking.calendly_event_uri = _event_uri(payload)
    location = scheduled_event.get("location") or {}
    if location.get("join_url") and isinstance(booking, Booking):
        booking.meeting_url = location["join_url"]

    start_time = scheduled_event.get("start_time")
    if start_time:
        start = parse_calendly_time(start_time)
        booking.date = start.strftime("%Y-%m-%d")
        booking.time = format_slot_time(start)

    db.commit()
    logger.info(f"📅 Calendly event {booking.calendly_event_uri} linked to booking {booking.id}")
    return booking


def handle_invitee_canceled(payload: dict[str, Any], db: Session) -> Optional[AnyBooking]:
    event_uri = _event_uri(payload)
    if not event_uri:
        logger.error("❌ Missing event URI in cancellation webhook")
        return None

    booking = BookingRepository.find_by_calendly_event(db, event_uri)
    if not booking:
        logger.warning(f"⚠️ No booking found for cancelled event: {event_uri}")
        return None

    booking.status = BookingStatus.CANCELLED
    db.commit()
    logger.info(f"🚫 Booking {booking.id} cancelled via Calendly")
    return booking
