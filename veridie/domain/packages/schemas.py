"""Package domain schemas - consultant profiles, packages and purchases"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ConsultantUpdate(BaseModel):
    """Create-or-update payload for the caller's consultant profile"""

    headline: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    image_url: Optional[str] = Field(None, max_length=500)
    slug: Optional[str] = Field(None, min_length=2, max_length=255)
    university: Optional[str] = None
    major: Optional[list[str]] = None
    gpa_score: Optional[float] = Field(None, ge=0)
    gpa_scale: Optional[float] = Field(None, gt=0)
    sat_reading: Optional[int] = Field(None, ge=200, le=800)
    sat_math: Optional[int] = Field(None, ge=200, le=800)
    act_composite: Optional[int] = Field(None, ge=1, le=36)
    accepted_schools: Optional[list[str]] = None
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=50)
    contact_telegram: Optional[str] = Field(None, max_length=100)
    contact_whatsapp: Optional[str] = Field(None, max_length=50)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if not all(c.isalnum() or c == "-" for c in v):
            raise ValueError("Slug may only contain letters, numbers and hyphens")
        return v


class ConsultantResponse(BaseModel):
    id: str
    user_id: str
    headline: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    slug: str
    university: Optional[str] = None
    major: Optional[list[str]] = None
    gpa_score: Optional[float] = None
    gpa_scale: Optional[float] = None
    sat_reading: Optional[int] = None
    sat_math: Optional[int] = None
    act_composite: Optional[int] = None
    accepted_schools: Optional[list[str]] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_telegram: Optional[str] = None
    contact_whatsapp: Optional[str] = None

    class Config:
        from_attributes = True


class PackageCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    duration: Optional[int] = Field(None, gt=0)
    is_featured: bool = False
    calendly_link: Optional[str] = Field(None, max_length=500)


class PackageUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = Field(None, gt=0)
    duration: Optional[int] = Field(None, gt=0)
    is_featured: Optional[bool] = None
    calendly_link: Optional[str] = Field(None, max_length=500)


class PackageResponse(BaseModel):
    id: str
    consultant_id: str
    title: str
    description: Optional[str] = None
    price: float
    duration: Optional[int] = None
    is_featured: bool = False
    calendly_link: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CheckoutSessionRequest(BaseModel):
    packageId: str = Field(..., min_length=1)
    consultantId: str = Field(..., min_length=1)


class CheckoutSessionResponse(BaseModel):
    url: str


class ConsultantContact(BaseModel):
    name: Optional[str] = None
    contact_email: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_telegram: Optional[str] = None
    contact_whatsapp: Optional[str] = None


class PurchaseResponse(BaseModel):
    id: str
    user_id: str
    package_id: Optional[str] = None
    consultant_id: str
    status: str
    amount_total: Optional[int] = None
    contact_initiated: bool = False
    contact_initiated_at: Optional[datetime] = None
    calendly_scheduled: bool = False
    calendly_scheduled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    package: Optional[PackageResponse] = None
    consultant: Optional[ConsultantContact] = None


class PurchaseStatusUpdate(BaseModel):
    contactInitiated: Optional[bool] = None
    calendlyScheduled: Optional[bool] = None
