"""API 엔드포인트 패키지 - export only."""

from .error_handlers import register_exception_handlers
from .routes import booking_router, get_booking_service, health_router

__all__ = ["booking_router", "health_router", "get_booking_service", "register_exception_handlers"]
