"""Portfolio domain schemas - activities, awards and reviews"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ActivityCreate(BaseModel):
    title: str = Field(..., min_length=1)
    organization: str = Field(..., min_length=1)
    years: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class ActivityUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    organization: Optional[str] = Field(None, min_length=1)
    years: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)


class ActivityResponse(BaseModel):
    id: str
    mentor_id: str
    title: str
    organization: str
    years: str
    description: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AwardCreate(BaseModel):
    title: str = Field(..., min_length=1)
    issuer: str = Field(..., min_length=1)
    year: str = Field(..., min_length=1)
    description: Optional[str] = None


class AwardUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    issuer: Optional[str] = Field(None, min_length=1)
    year: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None


class AwardResponse(BaseModel):
    id: str
    mentor_id: str
    title: str
    issuer: str
    year: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReviewCreate(BaseModel):
    mentorId: str
    rating: int = Field(..., ge=1, le=5)
    service: str = Field(..., min_length=1)
    text: str = Field(..., min_length=1)


class ReviewResponse(BaseModel):
    id: str
    mentor_id: str
    client_id: Optional[str] = None
    name: str
    rating: int
    service: str
    text: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
