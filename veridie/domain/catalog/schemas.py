"""Catalog domain schemas - mentor services sold through Stripe"""

from typing import Optional

from pydantic import BaseModel, Field


class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: float = Field(..., gt=0)
    duration: int = Field(60, gt=0, le=480)
    calendlyEventTypeUri: Optional[str] = None


class ServiceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    duration: Optional[int] = Field(None, gt=0, le=480)
    calendlyEventTypeUri: Optional[str] = None


class ServiceResponse(BaseModel):
    id: str
    mentor_id: str
    name: str
    description: Optional[str] = None
    price: float
    duration: int
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None
    calendly_event_type_uri: Optional[str] = None

    class Config:
        from_attributes = True


class ServiceCreateResponse(BaseModel):
    success: bool
    data: ServiceResponse
