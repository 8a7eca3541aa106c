"""Package router - consultant profiles, packages, package checkout and purchases"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    ConsultantResponse,
    ConsultantUpdate,
    PackageCreate,
    PackageResponse,
    PackageUpdate,
    PurchaseResponse,
    PurchaseStatusUpdate,
)
from .service import PackageService

router = APIRouter(tags=["Packages"])


def get_package_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PackageService:
    """Dependency injection for PackageService"""
    return PackageService(db, stripe_service)


@router.get("/consultants/me", response_model=ConsultantResponse)
def get_my_consultant(
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.get_my_consultant(current_user)


@router.put("/consultants/me", response_model=ConsultantResponse)
def upsert_my_consultant(
    data: ConsultantUpdate,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.upsert_consultant(data, current_user)


@router.get("/consultants/{slug}", response_model=ConsultantResponse)
def get_consultant(slug: str, service: PackageService = Depends(get_package_service)):
    return service.get_consultant_by_slug(slug)


@router.get("/packages", response_model=list[PackageResponse])
def list_packages(
    consultantId: Optional[str] = Query(None),
    service: PackageService = Depends(get_package_service),
):
    return service.list_packages(consultantId)


@router.post("/packages", response_model=PackageResponse, status_code=201)
def create_package(
    data: PackageCreate,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.create_package(data, current_user)


@router.put("/packages/{package_id}", response_model=PackageResponse)
def update_package(
    package_id: str,
    data: PackageUpdate,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.update_package(package_id, data, current_user)


@router.delete("/packages/{package_id}")
def delete_package(
    package_id: str,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.delete_package(package_id, current_user)


@router.post("/checkout/sessions", response_model=CheckoutSessionResponse)
def create_package_checkout(
    data: CheckoutSessionRequest,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    """Stripe Checkout for a consultant package"""
    return CheckoutSessionResponse(url=service.create_checkout_session(data, current_user))


@router.get("/purchases/{purchase_id}", response_model=PurchaseResponse)
def get_purchase(
    purchase_id: str,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.get_purchase(purchase_id, current_user)


@router.patch("/purchases/{purchase_id}/status", response_model=PurchaseResponse)
def update_purchase_status(
    purchase_id: str,
    data: PurchaseStatusUpdate,
    current_user: Profile = Depends(get_current_user),
    service: PackageService = Depends(get_package_service),
):
    return service.update_purchase_status(purchase_id, data, current_user)
