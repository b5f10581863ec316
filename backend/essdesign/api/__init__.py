"""API routes."""

from .folders import router as folders_router
from .storage import router as storage_router

__all__ = [
    "folders_router",
    "storage_router",
]
