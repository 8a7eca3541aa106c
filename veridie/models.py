import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID string primary key (matches Supabase uuid columns)"""
    return str(uuid.uuid4())


class BookingStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"

    ALL = (PENDING, CONFIRMED, COMPLETED, CANCELLED, FAILED)


class PurchaseStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the Supabase auth user
    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    role = Column(String(20), default="client", nullable=False)  # client, consultant
    avatar = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    mentor = relationship("Mentor", back_populates="profile", uselist=False)


class Mentor(Base):
    __tablename__ = "mentors"

    id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True)
    title = Column(String(255), nullable=True)
    university = Column(String(255), nullable=True, index=True)
    bio = Column(Text, nullable=True)
    slug = Column(String(255), unique=True, index=True, nullable=True)
    rating = Column(Float, default=0, nullable=False)
    review_count = Column(Integer, default=0, nullable=False)
    specialties = Column(JSON, default=list, nullable=True)
    languages = Column(JSON, default=list, nullable=True)

    # Stripe Connect
    stripe_connect_account_id = Column(String(255), unique=True, index=True, nullable=True)
    stripe_connect_details_submitted = Column(Boolean, default=False, nullable=False)
    stripe_connect_charges_enabled = Column(Boolean, default=False, nullable=False)
    stripe_connect_payouts_enabled = Column(Boolean, default=False, nullable=False)

    # Calendly OAuth tokens (encrypted)
    calendly_access_token = Column(Text, nullable=True)
    calendly_refresh_token = Column(Text, nullable=True)
    calendly_token_expires_at = Column(DateTime, nullable=True)
    calendly_user_uri = Column(String(500), nullable=True)
    calendly_username = Column(String(255), nullable=True)
    calendly_event_type_uri = Column(String(500), nullable=True)
    calendly_webhook_subscriptions = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    profile = relationship("Profile", back_populates="mentor")
    services = relationship("Service", back_populates="mentor", cascade="all, delete-orphan")
    activities = relationship("Activity", back_populates="mentor", cascade="all, delete-orphan")
    awards = relationship("Award", back_populates="mentor", cascade="all, delete-orphan")
    reviews = relationship(
        "Review",
        back_populates="mentor",
        cascade="all, delete-orphan",
        order_by="desc(Review.created_at)",
    )


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mentor_id = Column(String(36), ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)  # USD
    duration = Column(Integer, default=60, nullable=False)  # minutes
    stripe_product_id = Column(String(255), nullable=True)
    stripe_price_id = Column(String(255), nullable=True)
    calendly_event_type_uri = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    mentor = relationship("Mentor", back_populates="services")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    client_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    mentor_id = Column(String(36), ForeignKey("mentors.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    date = Column(String(20), nullable=True)  # YYYY-MM-DD
    time = Column(String(20), nullable=True)  # e.g. "10:00 AM"
    status = Column(String(20), default=BookingStatus.PENDING, nullable=False, index=True)
    amount = Column(Float, nullable=True)
    payment_intent_id = Column(String(255), index=True, nullable=True)
    checkout_session_id = Column(String(255), index=True, nullable=True)
    calendly_event_uri = Column(String(500), index=True, nullable=True)
    calendly_scheduling_url = Column(String(500), nullable=True)
    meeting_url = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    client = relationship("Profile", foreign_keys=[client_id])
    mentor = relationship("Mentor")
    service = relationship("Service")


class GuestBooking(Base):
    __tablename__ = "guest_bookings"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mentor_id = Column(String(36), ForeignKey("mentors.id"), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    guest_name = Column(String(255), nullable=False)
    guest_email = Column(String(255), nullable=False)
    date = Column(String(20), nullable=True)
    time = Column(String(20), nullable=True)
    status = Column(String(20), default=BookingStatus.PENDING, nullable=False, index=True)
    amount = Column(Float, nullable=True)
    payment_intent_id = Column(String(255), index=True, nullable=True)
    checkout_session_id = Column(String(255), index=True, nullable=True)
    calendly_event_uri = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    mentor = relationship("Mentor")
    service = relationship("Service")


class Activity(Base):
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mentor_id = Column(String(36), ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    organization = Column(String(255), nullable=False)
    years = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("Mentor", back_populates="activities")


class Award(Base):
    __tablename__ = "awards"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mentor_id = Column(String(36), ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    issuer = Column(String(255), nullable=False)
    year = Column(String(10), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("Mentor", back_populates="awards")


class Review(Base):
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    mentor_id = Column(String(36), ForeignKey("mentors.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(String(36), ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5
    service = Column(String(255), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    mentor = relationship("Mentor", back_populates="reviews")


class Consultant(Base):
    """Academic profile of a consultant selling packages"""

    __tablename__ = "consultants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), unique=True, nullable=False)
    headline = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(500), nullable=True)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    university = Column(String(255), nullable=True)
    major = Column(JSON, default=list, nullable=True)
    gpa_score = Column(Float, nullable=True)
    gpa_scale = Column(Float, nullable=True)
    sat_reading = Column(Integer, nullable=True)
    sat_math = Column(Integer, nullable=True)
    act_composite = Column(Integer, nullable=True)
    accepted_schools = Column(JSON, default=list, nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(50), nullable=True)
    contact_telegram = Column(String(100), nullable=True)
    contact_whatsapp = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    profile = relationship("Profile")
    packages = relationship("Package", back_populates="consultant", cascade="all, delete-orphan")


class Package(Base):
    __tablename__ = "packages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    consultant_id = Column(
        String(36), ForeignKey("consultants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False)  # USD
    duration = Column(Integer, nullable=True)  # minutes
    is_featured = Column(Boolean, default=False, nullable=False)
    calendly_link = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    consultant = relationship("Consultant", back_populates="packages")


class Purchase(Base):
    __tablename__ = "purchases"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    package_id = Column(String(36), ForeignKey("packages.id", ondelete="SET NULL"), nullable=True)
    consultant_id = Column(String(36), ForeignKey("consultants.id"), nullable=False, index=True)
    status = Column(String(20), default=PurchaseStatus.PENDING, nullable=False)
    amount_total = Column(Integer, nullable=True)  # cents, as reported by Stripe
    stripe_payment_intent_id = Column(String(255), nullable=True)
    checkout_session_id = Column(String(255), index=True, nullable=True)
    contact_initiated = Column(Boolean, default=False, nullable=False)
    contact_initiated_at = Column(DateTime, nullable=True)
    calendly_scheduled = Column(Boolean, default=False, nullable=False)
    calendly_scheduled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    package = relationship("Package")
    consultant = relationship("Consultant")
