"""Route module exports for API v1."""

from .health import router as health_router
from .syllabi import router as syllabi_router

__all__ = ["health_router", "syllabi_router"]
