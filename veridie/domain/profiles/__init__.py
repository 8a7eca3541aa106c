"""Profiles domain - user profiles and the mentor directory"""

from .router import router

__all__ = ["router"]
