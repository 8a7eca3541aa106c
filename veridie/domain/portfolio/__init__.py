"""Portfolio domain - mentor activities, awards and reviews"""

from .router import router

__all__ = ["router"]
