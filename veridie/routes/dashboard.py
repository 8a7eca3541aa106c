import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_mentor, get_current_user
from ..database import get_db
from ..models import Booking, BookingStatus, Mentor, Profile, Service
from ..services.calendly_service import CalendlyService, get_calendly_service
from ..services.calendly_tokens import CalendlyTokenState, get_token_state, schedule_refresh_if_needed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboard"])


@router.get("/dashboard")
async def get_dashboard(
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    mentor: Mentor = Depends(get_current_mentor),
    db: Session = Depends(get_db),
    calendly: CalendlyService = Depends(get_calendly_service),
):
    """
    Mentor dashboard summary.

    An expiring Calendly token is refreshed after the response is sent, so
    the page never waits on Calendly.
    """
    refresh_scheduled = schedule_refresh_if_needed(mentor, background_tasks, calendly)
    token_state = get_token_state(mentor)

    booking_counts = dict(
        db.query(Booking.status, func.count(Booking.id))
        .filter(Booking.mentor_id == mentor.id)
        .group_by(Booking.status)
        .all()
    )
    service_count = db.query(func.count(Service.id)).filter(Service.mentor_id == mentor.id).scalar()

    return {
        "profile": {
            "id": current_user.id,
            "email": current_user.email,
            "name": current_user.name,
            "avatar": current_user.avatar,
            "slug": mentor.slug,
            "rating": mentor.rating,
            "reviewCount": mentor.review_count,
        },
        "counts": {
            "services": service_count or 0,
            "bookings": sum(booking_counts.values()),
            "pendingBookings": booking_counts.get(BookingStatus.PENDING, 0),
            "confirmedBookings": booking_counts.get(BookingStatus.CONFIRMED, 0),
            "completedBookings": booking_counts.get(BookingStatus.COMPLETED, 0),
        },
        "calendly": {
            "state": token_state.value,
            "connected": token_state != CalendlyTokenState.DISCONNECTED,
            "username": mentor.calendly_username,
            "expiresAt": mentor.calendly_token_expires_at,
            "refreshScheduled": refresh_scheduled,
        },
        "stripe": {
            "connected": bool(mentor.stripe_connect_account_id),
            "detailsSubmitted": mentor.stripe_connect_details_submitted,
            "chargesEnabled": mentor.stripe_connect_charges_enabled,
            "payoutsEnabled": mentor.stripe_connect_payouts_enabled,
        },
    }
