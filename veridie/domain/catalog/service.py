"""Catalog service - mentor services with a Stripe product and price each"""

import logging

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Mentor, Service
from ...services.stripe_service import StripeNotConfiguredError, StripeService, stripe_http_error, to_cents
from .repository import ServiceRepository
from .schemas import ServiceCreate, ServiceUpdate

logger = logging.getLogger(__name__)


class CatalogService:
    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.stripe = stripe_service
        self.repo = ServiceRepository()

    def list_services(self, mentor: Mentor) -> list[Service]:
        return self.repo.list_for_mentor(self.db, mentor.id)

    def get_owned_service(self, service_id: str, mentor: Mentor) -> Service:
        service = self.repo.get(self.db, service_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")
        if service.mentor_id != mentor.id:
            logger.warning(f"⚠️ Mentor {mentor.id} tried to modify service {service_id} of {service.mentor_id}")
            raise HTTPException(status_code=403, detail="Not authorized to modify this service")
        return service

    def create_service(self, data: ServiceCreate, mentor: Mentor) -> Service:
        """Create the Stripe product and price first, then the row"""
        logger.info(f"📥 Creating service '{data.name}' for mentor {mentor.id}")
        try:
            product = self.stripe.create_product(
                data.name, data.description, metadata={"mentor_id": mentor.id}
            )
            price = self.stripe.create_price(product.id, to_cents(data.price))
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            logger.error(f"❌ Stripe product setup failed for mentor {mentor.id}: {e}")
            raise stripe_http_error(e) from e

        return self.repo.create(
            self.db,
            mentor_id=mentor.id,
            name=data.name,
            description=data.description,
            price=data.price,
            duration=data.duration,
            stripe_product_id=product.id,
            stripe_price_id=price.id,
            calendly_event_type_uri=data.calendlyEventTypeUri,
        )

    def update_service(self, service_id: str, data: ServiceUpdate, mentor: Mentor) -> Service:
        service = self.get_owned_service(service_id, mentor)
        return self.repo.update(
            self.db,
            service,
            name=data.name,
            description=data.description,
            duration=data.duration,
            calendly_event_type_uri=data.calendlyEventTypeUri,
        )

    def delete_service(self, service_id: str, mentor: Mentor) -> dict:
        service = self.get_owned_service(service_id, mentor)

        if service.stripe_product_id:
            # Stripe keeps products that have prices; archiving is the closest to deleting
            try:
                self.stripe.deactivate_product(service.stripe_product_id)
            except (stripe.StripeError, StripeNotConfiguredError) as e:
                logger.warning(f"⚠️ Could not deactivate Stripe product {service.stripe_product_id}: {e}")

        self.repo.delete(self.db, service)
        logger.info(f"🗑️ Service {service_id} deleted by mentor {mentor.id}")
        return {"success": True}
