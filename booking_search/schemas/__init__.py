"""Pydantic 스키마 - export only."""

from .booking_schema import (
    ActivityDetails,
    AggregatedSearchResult,
    Availability,
    BookingConfirmation,
    BookingDetails,
    BookingOption,
    BookingRequest,
    Budget,
    FilterMetadata,
    FlightDetails,
    FlightEndpoint,
    HotelDetails,
    Price,
    PriceRange,
    ProviderHealth,
    ProviderSearchResult,
    SearchFilters,
    SearchRequest,
    SearchType,
    SortBy,
    SortOrder,
    StopOption,
)

__all__ = [
    "ActivityDetails",
    "AggregatedSearchResult",
    "Availability",
    "BookingConfirmation",
    "BookingDetails",
    "BookingOption",
    "BookingRequest",
    "Budget",
    "FilterMetadata",
    "FlightDetails",
    "FlightEndpoint",
    "HotelDetails",
    "Price",
    "PriceRange",
    "ProviderHealth",
    "ProviderSearchResult",
    "SearchFilters",
    "SearchRequest",
    "SearchType",
    "SortBy",
    "SortOrder",
    "StopOption",
]
