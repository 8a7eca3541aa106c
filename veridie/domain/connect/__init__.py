"""Connect domain - Stripe Connect payout accounts"""

from .router import router

__all__ = ["router"]
