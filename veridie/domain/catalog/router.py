"""Catalog router - mentor services"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_mentor
from ...database import get_db
from ...models import Mentor
from ...services.stripe_service import StripeService, get_stripe_service
from .schemas import ServiceCreate, ServiceCreateResponse, ServiceResponse, ServiceUpdate
from .service import CatalogService

router = APIRouter(tags=["Services"])


def get_catalog_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> CatalogService:
    """Dependency injection for CatalogService"""
    return CatalogService(db, stripe_service)


@router.get("/services", response_model=list[ServiceResponse])
def list_services(
    mentor: Mentor = Depends(get_current_mentor),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.list_services(mentor)


@router.post("/stripe/create-service", response_model=ServiceCreateResponse, status_code=201)
def create_service(
    data: ServiceCreate,
    mentor: Mentor = Depends(get_current_mentor),
    service: CatalogService = Depends(get_catalog_service),
):
    created = service.create_service(data, mentor)
    return ServiceCreateResponse(success=True, data=ServiceResponse.model_validate(created))


@router.put("/services/{service_id}", response_model=ServiceResponse)
def update_service(
    service_id: str,
    data: ServiceUpdate,
    mentor: Mentor = Depends(get_current_mentor),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.update_service(service_id, data, mentor)


@router.delete("/stripe/delete-service")
def delete_service(
    serviceId: Optional[str] = Query(None),
    mentor: Mentor = Depends(get_current_mentor),
    service: CatalogService = Depends(get_catalog_service),
):
    if not serviceId:
        raise HTTPException(status_code=400, detail="Service ID is required")
    return service.delete_service(serviceId, mentor)
