"""Booking router - checkout, booking reads and confirmation"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...services.calendly_service import CalendlyService, get_calendly_service
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import (
    BookingResponse,
    CheckoutRequest,
    CheckoutResponse,
    ConfirmBookingRequest,
    GuestCheckoutRequest,
)
from .service import BookingService

router = APIRouter(tags=["Bookings"])


def get_booking_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
    calendly: CalendlyService = Depends(get_calendly_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, stripe_service, calendly)


@router.post("/stripe/create-checkout", response_model=CheckoutResponse)
def create_checkout(
    data: CheckoutRequest,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    url, booking_id = service.create_checkout(data, current_user)
    return CheckoutResponse(url=url, bookingId=booking_id)


@router.post("/stripe/guest-checkout", response_model=CheckoutResponse)
def create_guest_checkout(
    data: GuestCheckoutRequest,
    service: BookingService = Depends(get_booking_service),
):
    """Checkout without an account"""
    url, booking_id = service.create_guest_checkout(data)
    return CheckoutResponse(url=url, bookingId=booking_id)


@router.get("/bookings", response_model=list[BookingResponse])
def list_bookings(
    status: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.list_bookings(current_user, status)


# Declared before /booking/{booking_id} so "details" is not taken for an id
@router.get("/booking/details", response_model=BookingResponse)
def get_booking_details(
    session_id: str = Query(..., min_length=1),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking_details(session_id)


@router.get("/booking/{booking_id}", response_model=BookingResponse)
def get_booking(
    booking_id: str,
    current_user: Profile = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return service.get_booking(booking_id, current_user)


@router.post("/booking/confirm")
async def confirm_booking(
    data: ConfirmBookingRequest,
    service: BookingService = Depends(get_booking_service),
):
    status_code, body = await service.confirm_booking(data)
    return JSONResponse(status_code=status_code, content=body)
