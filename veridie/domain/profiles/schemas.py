"""Profile domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..catalog.schemas import ServiceResponse
from ..portfolio.schemas import ActivityResponse, AwardResponse, ReviewResponse


class ProfileResponse(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    avatar: Optional[str] = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar: Optional[str] = Field(None, max_length=500)


class MentorUpdate(BaseModel):
    """Schema for updating the caller's mentor profile"""

    title: Optional[str] = None
    university: Optional[str] = None
    bio: Optional[str] = None
    slug: Optional[str] = Field(None, min_length=2, max_length=255)
    specialties: Optional[list[str]] = None
    languages: Optional[list[str]] = None
    calendlyEventTypeUri: Optional[str] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        if v is None:
            return v
        v = v.strip().lower()
        if not all(c.isalnum() or c == "-" for c in v):
            raise ValueError("Slug may only contain letters, numbers and hyphens")
        return v


class MentorSummary(BaseModel):
    id: str
    name: Optional[str] = None
    avatar: Optional[str] = None
    title: Optional[str] = None
    university: Optional[str] = None
    slug: Optional[str] = None
    rating: float = 0
    reviewCount: int = 0
    specialties: list[str] = []
    startingPrice: Optional[float] = None
    calendlyConnected: bool = False


class MentorListResponse(BaseModel):
    mentors: list[MentorSummary]
    total: int
    page: int
    pages: int


class MentorDetail(MentorSummary):
    bio: Optional[str] = None
    languages: list[str] = []
    acceptsPayments: bool = False
    services: list[ServiceResponse] = []
    activities: list[ActivityResponse] = []
    awards: list[AwardResponse] = []
    reviews: list[ReviewResponse] = []
