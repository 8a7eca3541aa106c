"""Catalog domain - mentor services and their Stripe products"""

from .router import router

__all__ = ["router"]
