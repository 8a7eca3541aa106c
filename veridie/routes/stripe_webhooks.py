"""
Stripe Webhook Handler
The only place a paid booking becomes confirmed
"""

import logging
from typing import Any, Optional

import stripe
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..config import STRIPE_WEBHOOK_SECRET
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..domain.connect.service import apply_account_status
from ..domain.packages.repository import PackageRepository
from ..models import Booking, BookingStatus, GuestBooking, Mentor, PurchaseStatus
from ..services.stripe_service import metadata_value

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])

STRIPE_SIGNATURE_HEADER = "Stripe-Signature"


@router.post("/stripe")
async def handle_stripe_webhook(request: Request, db: Session = Depends(get_db)):
    """
    Events handled:
    - checkout.session.completed - confirm booking / guest booking / purchase
    - checkout.session.expired - cancel what is still pending
    - payment_intent.payment_failed - mark the pending booking failed
    - account.updated - sync Connect onboarding flags
    """
    if not STRIPE_WEBHOOK_SECRET:
        logger.error("❌ STRIPE_WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=500, detail="Webhook secret not configured")

    payload = await request.body()
    try:
        event = stripe.Webhook.construct_event(
            payload, request.headers.get(STRIPE_SIGNATURE_HEADER, ""), STRIPE_WEBHOOK_SECRET
        )
    except stripe.SignatureVerificationError as e:
        logger.warning(f"🚫 Stripe webhook rejected: {e}")
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Webhook Error: invalid JSON payload") from e

    obj = event.data.object
    logger.info(f"📥 Received Stripe webhook: {event.type} ({event.id})")

    if event.type == "checkout.session.completed":
        handle_checkout_completed(obj, db)
    elif event.type == "checkout.session.expired":
        handle_checkout_expired(obj, db)
    elif event.type == "payment_intent.payment_failed":
        handle_payment_failed(obj, db)
    elif event.type == "account.updated":
        handle_account_updated(obj, db)
    else:
        logger.info(f"ℹ️ Unhandled Stripe event type: {event.type}")

    return {"received": True}


def _booking_target(obj: Any) -> tuple[type, Optional[str]]:
    model = GuestBooking if metadata_value(obj, "isGuestBooking") == "true" else Booking
    return model, metadata_value(obj, "bookingId")


def handle_checkout_completed(session: Any, db: Session) -> None:
    if session.payment_status != "paid":
        logger.info(f"ℹ️ Checkout {session.id} completed without payment ({session.payment_status})")
        return

    if metadata_value(session, "purchase_id"):
        _complete_purchase(session, db)
        return

    payment_intent = getattr(session, "payment_intent", None)
    model, booking_id = _booking_target(session)
    booking = BookingRepository.find_for_checkout(
        db,
        model,
        booking_id=booking_id,
        session_id=session.id,
        payment_intent_id=payment_intent,
    )
    if not booking:
        logger.warning(f"⚠️ No booking found for checkout session {session.id}")
        return

    if booking.status != BookingStatus.PENDING:
        # Replayed delivery, or the booking was cancelled before payment landed
        logger.info(f"ℹ️ Booking {booking.id} already {booking.status}, leaving it unchanged")
        return

    booking.status = BookingStatus.CONFIRMED
    if payment_intent:
        booking.payment_intent_id = payment_intent
    booking.checkout_session_id = booking.checkout_session_id or session.id
    db.commit()
    logger.info(f"✅ Booking {booking.id} confirmed by checkout {session.id}")


def _complete_purchase(session: Any, db: Session) -> None:
    purchase = PackageRepository.find_purchase_for_checkout(
        db, purchase_id=metadata_value(session, "purchase_id"), session_id=session.id
    )
    if not purchase:
        logger.warning(f"⚠️ No purchase found for checkout session {session.id}")
        return
    if purchase.status != PurchaseStatus.PENDING:
        logger.info(f"ℹ️ Purchase {purchase.id} already {purchase.status}, leaving it unchanged")
        return

    purchase.status = PurchaseStatus.COMPLETED
    purchase.amount_total = getattr(session, "amount_total", None)
    payment_intent = getattr(session, "payment_intent", None)
    if payment_intent:
        purchase.stripe_payment_intent_id = payment_intent
    db.commit()
    logger.info(f"✅ Purchase {purchase.id} completed ({purchase.amount_total} cents)")


def handle_checkout_expired(session: Any, db: Session) -> None:
    purchase_id = metadata_value(session, "purchase_id")
    target: Optional[Any]
    if purchase_id:
        target = PackageRepository.find_purchase_for_checkout(db, purchase_id=purchase_id, session_id=session.id)
    else:
        model, booking_id = _booking_target(session)
        target = BookingRepository.find_for_checkout(db, model, booking_id=booking_id, session_id=session.id)

    if not target or target.status != BookingStatus.PENDING:
        return

    target.status = BookingStatus.CANCELLED
    db.commit()
    logger.info(f"⌛ Checkout {session.id} expired, {target.id} cancelled")


def handle_payment_failed(payment_intent: Any, db: Session) -> None:
    """Checkout copies the booking metadata onto the intent, so either lookup works"""
    model, booking_id = _booking_target(payment_intent)
    booking = BookingRepository.find_for_checkout(
        db, model, booking_id=booking_id, payment_intent_id=payment_intent.id
    )
    if not booking:
        logger.info(f"ℹ️ Payment {payment_intent.id} failed with no matching booking")
        return
    if booking.status != BookingStatus.PENDING:
        logger.info(f"ℹ️ Booking {booking.id} already {booking.status}, ignoring failed payment")
        return

    booking.status = BookingStatus.FAILED
    booking.payment_intent_id = booking.payment_intent_id or payment_intent.id
    db.commit()
    logger.info(f"❌ Booking {booking.id} marked failed after payment {payment_intent.id} was declined")


def handle_account_updated(account: Any, db: Session) -> None:
    mentor = db.query(Mentor).filter(Mentor.stripe_connect_account_id == account.id).first()
    if not mentor:
        logger.warning(f"⚠️ account.updated for unknown Connect account {account.id}")
        return

    if apply_account_status(mentor, account):
        db.commit()
        logger.info(f"🔄 Connect flags updated for mentor {mentor.id} from {account.id}")
