"""
Package service - consultant profiles, their packages, and package purchases.

Package checkout is a destination charge to the Connect account on the
consultant's mentor row. The purchase stays `pending` until the Stripe
webhook reports the session as paid.
"""

import logging
import re
import uuid
from datetime import datetime
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BASE_URL
from ...models import Consultant, Mentor, Package, Profile, Purchase, PurchaseStatus
from ...services.stripe_service import StripeNotConfiguredError, StripeService, stripe_http_error, to_cents
from .repository import PackageRepository
from .schemas import (
    CheckoutSessionRequest,
    ConsultantContact,
    ConsultantUpdate,
    PackageCreate,
    PackageResponse,
    PackageUpdate,
    PurchaseResponse,
    PurchaseStatusUpdate,
)

logger = logging.getLogger(__name__)


def default_slug(user: Profile) -> str:
    base = re.sub(r"[^a-z0-9]+", "-", (user.name or user.email.split("@")[0]).lower()).strip("-")
    return f"{base or 'consultant'}-{uuid.uuid4().hex[:6]}"


class PackageService:
    def __init__(self, db: Session, stripe_service: Optional[StripeService] = None):
        self.db = db
        self.stripe = stripe_service
        self.repo = PackageRepository()

    # ------------------------------------------------------------------
    # Consultants
    # ------------------------------------------------------------------

    def get_consultant_by_slug(self, slug: str) -> Consultant:
        consultant = self.repo.get_consultant_by_slug(self.db, slug)
        if not consultant:
            raise HTTPException(status_code=404, detail="Consultant not found")
        return consultant

    def get_my_consultant(self, user: Profile) -> Consultant:
        consultant = self.repo.get_consultant_for_user(self.db, user.id)
        if not consultant:
            raise HTTPException(status_code=404, detail="Consultant profile not found")
        return consultant

    def upsert_consultant(self, data: ConsultantUpdate, user: Profile) -> Consultant:
        consultant = self.repo.get_consultant_for_user(self.db, user.id)
        updates = data.model_dump(exclude_unset=True)

        slug = updates.get("slug")
        if slug and self.repo.slug_taken(self.db, slug, exclude_id=consultant.id if consultant else None):
            raise HTTPException(status_code=409, detail="Slug is already taken")

        if consultant is None:
            consultant = Consultant(user_id=user.id, slug=slug or default_slug(user))
            logger.info(f"✅ Creating consultant profile for user {user.id}")

        for key, value in updates.items():
            if key == "slug" and not value:
                continue
            setattr(consultant, key, value)
        return self.repo.save(self.db, consultant)

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def list_packages(self, consultant_id: Optional[str] = None) -> list[Package]:
        return self.repo.list_packages(self.db, consultant_id)

    def _owned_package(self, package_id: str, user: Profile) -> Package:
        package = self.repo.get_package(self.db, package_id)
        if not package:
            raise HTTPException(status_code=404, detail="Package not found")
        consultant = self.repo.get_consultant(self.db, package.consultant_id)
        if not consultant or consultant.user_id != user.id:
            logger.warning(f"⚠️ User {user.id} tried to modify package {package_id}")
            raise HTTPException(status_code=403, detail="Not authorized to modify this package")
        return package

    def create_package(self, data: PackageCreate, user: Profile) -> Package:
        consultant = self.get_my_consultant(user)
        package = Package(consultant_id=consultant.id, **data.model_dump())
        return self.repo.save(self.db, package)

    def update_package(self, package_id: str, data: PackageUpdate, user: Profile) -> Package:
        package = self._owned_package(package_id, user)
        for key, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(package, key, value)
        return self.repo.save(self.db, package)

    def delete_package(self, package_id: str, user: Profile) -> dict:
        package = self._owned_package(package_id, user)
        self.repo.delete(self.db, package)
        logger.info(f"🗑️ Package {package_id} deleted by user {user.id}")
        return {"success": True}

    # ------------------------------------------------------------------
    # Checkout and purchases
    # ------------------------------------------------------------------

    def create_checkout_session(self, data: CheckoutSessionRequest, user: Profile) -> str:
        package = self.repo.get_package(self.db, data.packageId)
        if not package or package.consultant_id != data.consultantId:
            raise HTTPException(status_code=404, detail="Package not found")

        consultant = self.repo.get_consultant(self.db, data.consultantId)
        payout_mentor = self.db.get(Mentor, consultant.user_id) if consultant else None
        if not payout_mentor or not payout_mentor.stripe_connect_account_id:
            raise HTTPException(status_code=400, detail="Consultant not found or not set up for payments")

        purchase = self.repo.save(
            self.db,
            Purchase(
                user_id=user.id,
                package_id=package.id,
                consultant_id=consultant.id,
                status=PurchaseStatus.PENDING,
            ),
        )

        metadata = {
            "purchase_id": purchase.id,
            "package_id": package.id,
            "consultant_id": consultant.id,
            "user_id": user.id,
        }
        try:
            session = self.stripe.create_checkout_session(
                amount_cents=to_cents(package.price),
                destination_account=payout_mentor.stripe_connect_account_id,
                product_name=package.title,
                product_description=package.description,
                success_url=f"{BASE_URL}/purchases/success?purchase_id={purchase.id}",
                cancel_url=f"{BASE_URL}/packages/{package.id}",
                metadata=metadata,
                customer_email=user.email,
            )
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            logger.error(f"❌ Package checkout failed for purchase {purchase.id}: {e}")
            purchase.status = PurchaseStatus.CANCELLED
            self.db.commit()
            raise stripe_http_error(e) from e

        purchase.checkout_session_id = session.id
        purchase.stripe_payment_intent_id = getattr(session, "payment_intent", None)
        self.db.commit()
        logger.info(f"💳 Purchase {purchase.id} checkout opened for package {package.id}")
        return session.url

    def _visible_purchase(self, purchase_id: str, user: Profile) -> Purchase:
        purchase = self.repo.get_purchase(self.db, purchase_id)
        if not purchase:
            raise HTTPException(status_code=404, detail="Purchase not found")
        consultant_user = purchase.consultant.user_id if purchase.consultant else None
        if user.id not in (purchase.user_id, consultant_user):
            raise HTTPException(status_code=403, detail="Not authorized to view this purchase")
        return purchase

    def get_purchase(self, purchase_id: str, user: Profile) -> PurchaseResponse:
        purchase = self._visible_purchase(purchase_id, user)
        consultant = purchase.consultant
        contact = None
        if consultant:
            contact = ConsultantContact(
                name=consultant.profile.name if consultant.profile else None,
                contact_email=consultant.contact_email,
                contact_phone=consultant.contact_phone,
                contact_telegram=consultant.contact_telegram,
                contact_whatsapp=consultant.contact_whatsapp,
            )
        return PurchaseResponse(
            id=purchase.id,
            user_id=purchase.user_id,
            package_id=purchase.package_id,
            consultant_id=purchase.consultant_id,
            status=purchase.status,
            amount_total=purchase.amount_total,
            contact_initiated=purchase.contact_initiated,
            contact_initiated_at=purchase.contact_initiated_at,
            calendly_scheduled=purchase.calendly_scheduled,
            calendly_scheduled_at=purchase.calendly_scheduled_at,
            created_at=purchase.created_at,
            package=PackageResponse.model_validate(purchase.package) if purchase.package else None,
            consultant=contact,
        )

    def update_purchase_status(self, purchase_id: str, data: PurchaseStatusUpdate, user: Profile) -> PurchaseResponse:
        purchase = self._visible_purchase(purchase_id, user)
        now = datetime.utcnow()

        if data.contactInitiated is not None:
            purchase.contact_initiated = data.contactInitiated
            purchase.contact_initiated_at = now if data.contactInitiated else None
        if data.calendlyScheduled is not None:
            purchase.calendly_scheduled = data.calendlyScheduled
            purchase.calendly_scheduled_at = now if data.calendlyScheduled else None

        self.db.commit()
        return self.get_purchase(purchase_id, user)
