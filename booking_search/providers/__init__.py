"""Booking providers - export only."""

from .base import BaseBookingProvider, BookingProvider, SupportsBooking
from .booking_com import BookingComHotelProvider
from .expedia import ExpediaHotelProvider
from .factory import create_default_providers, create_provider
from .skyscanner import SkyscannerFlightProvider

__all__ = [
    "BookingProvider",
    "SupportsBooking",
    "BaseBookingProvider",
    "SkyscannerFlightProvider",
    "BookingComHotelProvider",
    "ExpediaHotelProvider",
    "create_default_providers",
    "create_provider",
]
