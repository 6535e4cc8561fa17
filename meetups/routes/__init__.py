"""
API route modules.
"""

from .groups import router as groups_router
from .misc import router as misc_router

__all__ = [
    "groups_router",
    "misc_router",
]
