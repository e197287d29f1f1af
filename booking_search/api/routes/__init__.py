"""API routes package."""

from .booking_routes import get_booking_service, router as booking_router
from .health_routes import router as health_router

__all__ = ["booking_router", "health_router", "get_booking_service"]
