"""Stripe service - payments, products and Connect accounts"""

import logging
from typing import Any, Optional

import stripe
from fastapi import HTTPException

from ..config import PLATFORM_FEE_PERCENT, STRIPE_API_VERSION, STRIPE_CURRENCY, STRIPE_SECRET_KEY

logger = logging.getLogger(__name__)


class StripeNotConfiguredError(RuntimeError):
    pass


def to_cents(amount: float) -> int:
    """Dollar amount to Stripe's smallest currency unit"""
    return int(round(float(amount) * 100))


def platform_fee_cents(amount_cents: int, percent: float = PLATFORM_FEE_PERCENT) -> int:
    """Application fee kept by the platform on a destination charge"""
    return int(round(amount_cents * percent / 100))


def metadata_value(obj: Any, key: str) -> Optional[str]:
    """Read one metadata key off a Stripe object; absent metadata reads as None"""
    return getattr(getattr(obj, "metadata", None), key, None)


def stripe_http_error(e: Exception) -> HTTPException:
    """Map a Stripe SDK failure onto the HTTP error returned to our caller"""
    if isinstance(e, StripeNotConfiguredError):
        return HTTPException(status_code=500, detail="Stripe is not configured")
    message = getattr(e, "user_message", None) or str(e)
    return HTTPException(status_code=502, detail=f"Stripe API error: {message}")


class StripeService:
    """Service for Stripe API operations"""

    def __init__(self, api_key: Optional[str] = STRIPE_SECRET_KEY, currency: str = STRIPE_CURRENCY):
        self.api_key = api_key
        self.currency = currency

        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")
        elif STRIPE_API_VERSION:
            stripe.api_version = STRIPE_API_VERSION

    def is_available(self) -> bool:
        return bool(self.api_key)

    def _require_key(self) -> str:
        if not self.api_key:
            raise StripeNotConfiguredError("Stripe client not initialized")
        return self.api_key

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def create_product(self, name: str, description: Optional[str] = None, metadata: Optional[dict] = None):
        params: dict[str, Any] = {"name": name, "metadata": metadata or {}}
        if description:
            params["description"] = description
        product = stripe.Product.create(api_key=self._require_key(), **params)
        logger.info(f"✅ Stripe product created: {product.id}")
        return product

    def create_price(self, product_id: str, unit_amount: int):
        """One-time price in cents"""
        price = stripe.Price.create(
            api_key=self._require_key(),
            product=product_id,
            unit_amount=unit_amount,
            currency=self.currency,
        )
        logger.info(f"✅ Stripe price created: {price.id} ({unit_amount} {self.currency})")
        return price

    def deactivate_product(self, product_id: str):
        return stripe.Product.modify(product_id, api_key=self._require_key(), active=False)

    # ------------------------------------------------------------------
    # Checkout
    # ------------------------------------------------------------------

    def create_checkout_session(
        self,
        *,
        amount_cents: int,
        destination_account: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        price_id: Optional[str] = None,
        product_name: Optional[str] = None,
        product_description: Optional[str] = None,
        customer_email: Optional[str] = None,
        client_reference_id: Optional[str] = None,
    ):
        """
        Destination charge on behalf of a mentor's Connect account.

        Uses the stored price when there is one, otherwise inline price data.
        """
        if price_id:
            line_item: dict[str, Any] = {"price": price_id, "quantity": 1}
        else:
            product_data: dict[str, Any] = {"name": product_name or "Consultation"}
            if product_description:
                product_data["description"] = product_description
            line_item = {
                "price_data": {
                    "currency": self.currency,
                    "product_data": product_data,
                    "unit_amount": amount_cents,
                },
                "quantity": 1,
            }

        params: dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [line_item],
            "payment_intent_data": {
                "application_fee_amount": platform_fee_cents(amount_cents),
                "transfer_data": {"destination": destination_account},
                "metadata": metadata,
            },
            "metadata": metadata,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        if customer_email:
            params["customer_email"] = customer_email
        if client_reference_id:
            params["client_reference_id"] = client_reference_id

        session = stripe.checkout.Session.create(api_key=self._require_key(), **params)
        logger.info(f"✅ Checkout session created: {session.id}")
        return session

    def retrieve_checkout_session(self, session_id: str):
        return stripe.checkout.Session.retrieve(session_id, api_key=self._require_key())

    # ------------------------------------------------------------------
    # Connect
    # ------------------------------------------------------------------

    def create_express_account(self, email: Optional[str] = None, metadata: Optional[dict] = None):
        params: dict[str, Any] = {
            "type": "express",
            "country": "US",
            "business_type": "individual",
            "capabilities": {
                "card_payments": {"requested": True},
                "transfers": {"requested": True},
            },
            "metadata": metadata or {},
        }
        if email:
            params["email"] = email
        account = stripe.Account.create(api_key=self._require_key(), **params)
        logger.info(f"✅ Stripe Connect account created: {account.id}")
        return account

    def create_account_link(self, account_id: str, refresh_url: str, return_url: str):
        return stripe.AccountLink.create(
            api_key=self._require_key(),
            account=account_id,
            refresh_url=refresh_url,
            return_url=return_url,
            type="account_onboarding",
        )

    def retrieve_account(self, account_id: str):
        return stripe.Account.retrieve(account_id, api_key=self._require_key())

    def create_login_link(self, account_id: str):
        return stripe.Account.create_login_link(account_id, api_key=self._require_key())


stripe_service = StripeService()


def get_stripe_service() -> StripeService:
    """Dependency injection for StripeService"""
    return stripe_service
