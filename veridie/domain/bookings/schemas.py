"""Booking domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def _validate_date(v: str) -> str:
    try:
        datetime.strptime(v, "%Y-%m-%d")
    except ValueError as e:
        raise ValueError("Date must be in YYYY-MM-DD format") from e
    return v


class CheckoutRequest(BaseModel):
    mentorId: str = Field(..., min_length=1)
    serviceId: str = Field(..., min_length=1)
    date: str
    time: str = Field(..., min_length=1, max_length=20)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _validate_date(v)


class GuestCheckoutRequest(CheckoutRequest):
    guestName: str = Field(..., min_length=1, max_length=255)
    guestEmail: EmailStr


class CheckoutResponse(BaseModel):
    url: str
    bookingId: str


class ConfirmBookingRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    bookingId: str = Field(..., min_length=1)


class BookingResponse(BaseModel):
    id: str
    clientId: Optional[str] = None
    mentorId: str
    mentorName: Optional[str] = None
    serviceId: Optional[str] = None
    serviceName: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    status: str
    amount: Optional[float] = None
    meetingUrl: Optional[str] = None
    schedulingUrl: Optional[str] = None
    isGuest: bool = False
    createdAt: Optional[datetime] = None
