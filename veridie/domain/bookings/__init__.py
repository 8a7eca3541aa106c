"""Bookings domain - checkout, booking reads and confirmation"""

from .router import router

__all__ = ["router"]
