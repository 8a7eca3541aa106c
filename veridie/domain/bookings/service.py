"""
Booking service - checkout for registered clients and guests, booking reads
and post-payment confirmation.

Bookings are created `pending`. Only the verified Stripe webhook moves them
to `confirmed`; confirm_booking reports status and attaches the Calendly
scheduling link once that has happened.
"""

import logging
from typing import Any, Optional, Union
from urllib.parse import urlencode

import httpx
import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ...config import BASE_URL
from ...models import Booking, BookingStatus, GuestBooking, Mentor, Profile, Service
from ...services.calendly_service import CalendlyService
from ...services.calendly_tokens import ensure_fresh_access_token
from ...services.stripe_service import (
    StripeNotConfiguredError,
    StripeService,
    metadata_value,
    stripe_http_error,
    to_cents,
)
from .repository import BookingRepository
from .schemas import BookingResponse, CheckoutRequest, ConfirmBookingRequest, GuestCheckoutRequest

logger = logging.getLogger(__name__)


def booking_response(booking: Union[Booking, GuestBooking]) -> BookingResponse:
    is_guest = isinstance(booking, GuestBooking)
    mentor = booking.mentor
    return BookingResponse(
        id=booking.id,
        clientId=None if is_guest else booking.client_id,
        mentorId=booking.mentor_id,
        mentorName=mentor.profile.name if mentor and mentor.profile else None,
        serviceId=booking.service_id,
        serviceName=booking.service.name if booking.service else None,
        date=booking.date,
        time=booking.time,
        status=booking.status,
        amount=booking.amount,
        meetingUrl=None if is_guest else booking.meeting_url,
        schedulingUrl=None if is_guest else booking.calendly_scheduling_url,
        isGuest=is_guest,
        createdAt=booking.created_at,
    )


class BookingService:
    def __init__(self, db: Session, stripe_service: StripeService, calendly: Optional[CalendlyService] = None):
        self.db = db
        self.stripe = stripe_service
        self.calendly = calendly
        self.repo = BookingRepository()

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def _bookable(self, mentor_id: str, service_id: str) -> tuple[Mentor, Service]:
        mentor = self.db.get(Mentor, mentor_id)
        if not mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        service = self.db.get(Service, service_id)
        if not service or service.mentor_id != mentor.id:
            raise HTTPException(status_code=404, detail="Service not found")
        if not mentor.stripe_connect_account_id:
            logger.warning(f"⚠️ Checkout attempted for mentor {mentor.id} without Connect account")
            raise HTTPException(status_code=400, detail="Mentor payment setup incomplete")
        return mentor, service

    def _open_session(
        self,
        booking: Union[Booking, GuestBooking],
        mentor: Mentor,
        service: Service,
        metadata: dict[str, str],
        success_url: str,
        customer_email: Optional[str] = None,
        client_reference_id: Optional[str] = None,
    ) -> str:
        try:
            session = self.stripe.create_checkout_session(
                amount_cents=to_cents(service.price),
                destination_account=mentor.stripe_connect_account_id,
                price_id=service.stripe_price_id,
                product_name=service.name,
                product_description=service.description,
                success_url=success_url,
                cancel_url=f"{BASE_URL}/mentors/{mentor.id}?canceled=true",
                metadata=metadata,
                customer_email=customer_email,
                client_reference_id=client_reference_id,
            )
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            logger.error(f"❌ Checkout session failed for booking {booking.id}: {e}")
            booking.status = BookingStatus.FAILED
            self.db.commit()
            raise stripe_http_error(e) from e

        booking.checkout_session_id = session.id
        booking.payment_intent_id = getattr(session, "payment_intent", None)
        self.db.commit()
        return session.url

    def create_checkout(self, data: CheckoutRequest, user: Profile) -> tuple[str, str]:
        """Pending booking plus Checkout Session; returns (url, booking_id)"""
        mentor, service = self._bookable(data.mentorId, data.serviceId)
        if mentor.id == user.id:
            raise HTTPException(status_code=400, detail="You cannot book your own service")

        booking = self.repo.create_booking(
            self.db,
            client_id=user.id,
            mentor_id=mentor.id,
            service_id=service.id,
            date=data.date,
            time=data.time,
            status=BookingStatus.PENDING,
            amount=service.price,
        )
        logger.info(f"📥 Pending booking {booking.id} created for client {user.id}")

        metadata = {
            "bookingId": booking.id,
            "mentorId": mentor.id,
            "serviceId": service.id,
            "userId": user.id,
            "date": data.date,
            "time": data.time,
        }
        success_url = (
            f"{BASE_URL}/booking/success?session_id={{CHECKOUT_SESSION_ID}}&booking_id={booking.id}"
        )
        url = self._open_session(booking, mentor, service, metadata, success_url, customer_email=user.email)
        return url, booking.id

    def create_guest_checkout(self, data: GuestCheckoutRequest) -> tuple[str, str]:
        mentor, service = self._bookable(data.mentorId, data.serviceId)

        booking = self.repo.create_guest_booking(
            self.db,
            mentor_id=mentor.id,
            service_id=service.id,
            guest_name=data.guestName,
            guest_email=str(data.guestEmail),
            date=data.date,
            time=data.time,
            status=BookingStatus.PENDING,
            amount=service.price,
        )
        logger.info(f"📥 Pending guest booking {booking.id} created for {data.guestEmail}")

        metadata = {
            "bookingId": booking.id,
            "mentorId": mentor.id,
            "serviceId": service.id,
            "date": data.date,
            "time": data.time,
            "guestName": data.guestName,
            "guestEmail": str(data.guestEmail),
            "isGuestBooking": "true",
        }
        success_url = (
            f"{BASE_URL}/booking/success?session_id={{CHECKOUT_SESSION_ID}}"
            f"&booking_id={booking.id}&guest=true"
        )
        url = self._open_session(
            booking,
            mentor,
            service,
            metadata,
            success_url,
            customer_email=str(data.guestEmail),
            client_reference_id=booking.id,
        )
        return url, booking.id

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_bookings(self, user: Profile, status: Optional[str] = None) -> list[BookingResponse]:
        if status and status not in BookingStatus.ALL:
            raise HTTPException(status_code=400, detail=f"Unknown booking status: {status}")
        return [booking_response(b) for b in self.repo.list_for_user(self.db, user.id, status)]

    def get_booking(self, booking_id: str, user: Profile) -> BookingResponse:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")
        if user.id not in (booking.client_id, booking.mentor_id):
            logger.warning(f"⚠️ User {user.id} denied access to booking {booking_id}")
            raise HTTPException(status_code=403, detail="Not authorized to view this booking")
        return booking_response(booking)

    def _retrieve_session(self, session_id: str) -> Any:
        try:
            return self.stripe.retrieve_checkout_session(session_id)
        except stripe.InvalidRequestError as e:
            raise HTTPException(status_code=404, detail="Checkout session not found") from e
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            raise stripe_http_error(e) from e

    def _booking_for_session(self, session: Any) -> Union[Booking, GuestBooking, None]:
        model = GuestBooking if metadata_value(session, "isGuestBooking") == "true" else Booking
        return self.repo.find_for_checkout(
            self.db,
            model,
            booking_id=metadata_value(session, "bookingId"),
            session_id=session.id,
            payment_intent_id=getattr(session, "payment_intent", None),
        )

    def get_booking_details(self, session_id: str) -> BookingResponse:
        """Success page lookup by Checkout Session id (works for guests too)"""
        session = self._retrieve_session(session_id)
        booking = self._booking_for_session(session)
        if not booking:
            raise HTTPException(status_code=404, detail="Booking not found")

        details = booking_response(booking)
        amount_total = getattr(session, "amount_total", None)
        if amount_total is not None:
            details.amount = amount_total / 100
        return details

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def confirm_booking(self, data: ConfirmBookingRequest) -> tuple[int, dict]:
        """
        Check a paid session against its booking. Returns (status_code, body):
        202 while the webhook has not confirmed the booking yet.
        """
        session = await run_in_threadpool(self._retrieve_session, data.sessionId)
        if getattr(session, "payment_status", None) != "paid":
            raise HTTPException(status_code=400, detail="Payment not completed")

        session_booking_id = metadata_value(session, "bookingId")
        if session_booking_id and session_booking_id != data.bookingId:
            raise HTTPException(status_code=400, detail="Session does not belong to this booking")

        booking = self._booking_for_session(session)
        if not booking or booking.id != data.bookingId:
            raise HTTPException(status_code=404, detail="Booking not found")

        if booking.status == BookingStatus.PENDING:
            logger.info(f"⏳ Booking {booking.id} paid, waiting for Stripe webhook")
            return 202, {
                "success": False,
                "status": booking.status,
                "bookingId": booking.id,
                "message": "Payment received. Confirmation is in progress.",
            }
        if booking.status != BookingStatus.CONFIRMED:
            raise HTTPException(status_code=409, detail=f"Booking is {booking.status}")

        scheduling_url = None
        if isinstance(booking, Booking):
            scheduling_url = booking.calendly_scheduling_url or await self.attach_scheduling_link(booking)

        return 200, {
            "success": True,
            "status": booking.status,
            "bookingId": booking.id,
            "schedulingUrl": scheduling_url,
        }

    async def attach_scheduling_link(self, booking: Booking) -> Optional[str]:
        """Best effort: a single-use Calendly link tagged with the booking id"""
        if self.calendly is None:
            return None
        mentor = booking.mentor
        event_type_uri = (booking.service and booking.service.calendly_event_type_uri) or (
            mentor.calendly_event_type_uri if mentor else None
        )
        if not mentor or not event_type_uri:
            logger.info(f"ℹ️ No Calendly event type for booking {booking.id}, skipping scheduling link")
            return None

        try:
            access_token = await ensure_fresh_access_token(self.db, mentor, self.calendly)
            link = await self.calendly.create_scheduling_link(access_token, event_type_uri)
        except HTTPException as e:
            logger.warning(f"⚠️ Calendly unavailable for mentor {mentor.id}: {e.detail}")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Scheduling link creation failed for booking {booking.id}: {e}")
            return None

        booking_url = link.get("resource", {}).get("booking_url")
        if not booking_url:
            return None

        # utm_content comes back in the invitee.created webhook's tracking block
        separator = "&" if "?" in booking_url else "?"
        booking.calendly_scheduling_url = f"{booking_url}{separator}{urlencode({'utm_content': booking.id})}"
        self.db.commit()
        logger.info(f"📅 Scheduling link attached to booking {booking.id}")
        return booking.calendly_scheduling_url
