"""서비스 구현 - export only."""

from .booking_search_service import BookingSearchService, ProbeResult

__all__ = ["BookingSearchService", "ProbeResult"]
