"""Booking repository - Database operations for bookings and guest bookings"""

from typing import Optional, Union

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Booking, GuestBooking

AnyBooking = Union[Booking, GuestBooking]


class BookingRepository:
    @staticmethod
    def create_booking(db: Session, **data) -> Booking:
        booking = Booking(**data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def create_guest_booking(db: Session, **data) -> GuestBooking:
        booking = GuestBooking(**data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        return (
            db.query(Booking)
            .options(joinedload(Booking.mentor), joinedload(Booking.service))
            .filter(Booking.id == booking_id)
            .first()
        )

    @staticmethod
    def get_guest_booking(db: Session, booking_id: str) -> Optional[GuestBooking]:
        return db.get(GuestBooking, booking_id)

    @staticmethod
    def find_for_checkout(
        db: Session,
        model: type[AnyBooking],
        booking_id: Optional[str] = None,
        session_id: Optional[str] = None,
        payment_intent_id: Optional[str] = None,
    ) -> Optional[AnyBooking]:
        """Locate the booking a checkout session paid for: metadata id, then session, then intent"""
        if booking_id:
            booking = db.get(model, booking_id)
            if booking:
                return booking
        if session_id:
            booking = db.query(model).filter(model.checkout_session_id == session_id).first()
            if booking:
                return booking
        if payment_intent_id:
            return db.query(model).filter(model.payment_intent_id == payment_intent_id).first()
        return None

    @staticmethod
    def list_for_user(db: Session, user_id: str, status: Optional[str] = None) -> list[Booking]:
        query = (
            db.query(Booking)
            .options(joinedload(Booking.mentor), joinedload(Booking.service))
            .filter(or_(Booking.client_id == user_id, Booking.mentor_id == user_id))
        )
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.date.desc(), Booking.created_at.desc()).all()

    @staticmethod
    def find_by_calendly_event(db: Session, event_uri: str) -> Optional[AnyBooking]:
        booking = db.query(Booking).filter(Booking.calendly_event_uri == event_uri).first()
        if booking:
            return booking
        return db.query(GuestBooking).filter(GuestBooking.calendly_event_uri == event_uri).first()
