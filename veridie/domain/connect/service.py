"""Stripe Connect service - mentor payout accounts"""

import logging
from typing import Any, Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import BASE_URL
from ...models import Mentor, Profile
from ...services.stripe_service import StripeNotConfiguredError, StripeService, stripe_http_error
from .schemas import ConnectAccountRequest, ConnectAccountStatus

logger = logging.getLogger(__name__)


def apply_account_status(mentor: Mentor, account: Any) -> bool:
    """Copy Stripe's onboarding flags onto the mentor row; returns whether anything changed"""
    flags = {
        "stripe_connect_details_submitted": bool(getattr(account, "details_submitted", False)),
        "stripe_connect_charges_enabled": bool(getattr(account, "charges_enabled", False)),
        "stripe_connect_payouts_enabled": bool(getattr(account, "payouts_enabled", False)),
    }
    changed = False
    for column, value in flags.items():
        if getattr(mentor, column) != value:
            setattr(mentor, column, value)
            changed = True
    return changed


def account_status(mentor: Mentor) -> ConnectAccountStatus:
    return ConnectAccountStatus(
        id=mentor.stripe_connect_account_id,
        details_submitted=mentor.stripe_connect_details_submitted,
        charges_enabled=mentor.stripe_connect_charges_enabled,
        payouts_enabled=mentor.stripe_connect_payouts_enabled,
    )


class ConnectService:
    def __init__(self, db: Session, stripe_service: StripeService):
        self.db = db
        self.stripe = stripe_service

    def start_onboarding(self, data: ConnectAccountRequest, mentor: Mentor, user: Profile) -> str:
        """Create (or reuse) the Express account and return an onboarding link"""
        try:
            if not mentor.stripe_connect_account_id:
                account = self.stripe.create_express_account(
                    email=data.email or user.email,
                    metadata={"mentor_id": mentor.id, "name": data.name or user.name or ""},
                )
                mentor.stripe_connect_account_id = account.id
                apply_account_status(mentor, account)
                self.db.commit()
                logger.info(f"✅ Connect account {account.id} stored for mentor {mentor.id}")

            link = self.stripe.create_account_link(
                mentor.stripe_connect_account_id,
                refresh_url=f"{BASE_URL}/dashboard/services?refresh=true",
                return_url=f"{BASE_URL}/stripe-connect-success",
            )
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            logger.error(f"❌ Connect onboarding failed for mentor {mentor.id}: {e}")
            raise stripe_http_error(e) from e

        return link.url

    def get_account(self, mentor: Mentor) -> Optional[ConnectAccountStatus]:
        if not mentor.stripe_connect_account_id:
            return None

        try:
            account = self.stripe.retrieve_account(mentor.stripe_connect_account_id)
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            logger.error(f"❌ Could not retrieve Connect account {mentor.stripe_connect_account_id}: {e}")
            raise stripe_http_error(e) from e

        if apply_account_status(mentor, account):
            self.db.commit()
            logger.info(f"🔄 Synced Connect status for mentor {mentor.id}")
        return account_status(mentor)

    def dashboard_link(self, mentor: Mentor) -> str:
        if not mentor.stripe_connect_account_id:
            raise HTTPException(status_code=404, detail="No Stripe account connected")
        try:
            return self.stripe.create_login_link(mentor.stripe_connect_account_id).url
        except (stripe.StripeError, StripeNotConfiguredError) as e:
            raise stripe_http_error(e) from e

    def disconnect(self, mentor: Mentor) -> dict:
        if not mentor.stripe_connect_account_id:
            raise HTTPException(status_code=400, detail="No Stripe account connected")

        logger.info(f"🔌 Disconnecting Connect account {mentor.stripe_connect_account_id} from mentor {mentor.id}")
        mentor.stripe_connect_account_id = None
        mentor.stripe_connect_details_submitted = False
        mentor.stripe_connect_charges_enabled = False
        mentor.stripe_connect_payouts_enabled = False
        self.db.commit()
        return {"success": True}
