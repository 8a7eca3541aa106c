"""Packages domain - consultant profiles, packages and purchases"""

from .router import router

__all__ = ["router"]
