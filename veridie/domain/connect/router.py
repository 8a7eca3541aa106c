"""Stripe Connect router - onboarding and payout account management"""

from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_mentor, get_current_user
from ...database import get_db
from ...models import Mentor, Profile
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import ConnectAccountRequest, ConnectAccountResponse, UrlResponse
from .service import ConnectService

router = APIRouter(prefix="/stripe", tags=["Stripe Connect"])


def get_connect_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> ConnectService:
    return ConnectService(db, stripe_service)


@router.post("/connect-account", response_model=UrlResponse)
def create_connect_account(
    data: Optional[ConnectAccountRequest] = Body(None),
    current_user: Profile = Depends(get_current_user),
    mentor: Mentor = Depends(get_current_mentor),
    service: ConnectService = Depends(get_connect_service),
):
    """Start (or resume) Express onboarding"""
    url = service.start_onboarding(data or ConnectAccountRequest(), mentor, current_user)
    return UrlResponse(url=url)


@router.get("/account", response_model=ConnectAccountResponse)
def get_connect_account(
    mentor: Mentor = Depends(get_current_mentor),
    service: ConnectService = Depends(get_connect_service),
):
    return ConnectAccountResponse(account=service.get_account(mentor))


@router.get("/dashboard-link", response_model=UrlResponse)
def get_dashboard_link(
    mentor: Mentor = Depends(get_current_mentor),
    service: ConnectService = Depends(get_connect_service),
):
    return UrlResponse(url=service.dashboard_link(mentor))


@router.post("/disconnect")
def disconnect_connect_account(
    mentor: Mentor = Depends(get_current_mentor),
    service: ConnectService = Depends(get_connect_service),
):
    return service.disconnect(mentor)
