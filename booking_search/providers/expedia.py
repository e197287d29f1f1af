"""Expedia hotel provider."""

from __future__ import annotations

from typing import Any, Dict, List

from booking_search.core.config import MOCK_API_KEY
from booking_search.schemas.booking_schema import (
    Availability,
    BookingDetails,
    BookingOption,
    ContactInfo,
    Coordinates,
    HotelDetails,
    HotelDistance,
    HotelPolicies,
    Location,
    Price,
    PriceBreakdown,
    SearchRequest,
    SearchType,
)

from .base import BaseBookingProvider


HOTEL_CHAINS = [
    "Marriott", "Hilton", "Hyatt", "IHG", "Radisson", "Best Western",
    "Choice Hotels", "Wyndham", "Accor", "Four Seasons", "Ritz-Carlton", "W Hotels",
]

ROOM_TYPES = [
    "Standard Room", "Deluxe Room", "Suite", "Executive Room", "Family Room",
    "Studio", "One Bedroom Suite", "Penthouse", "Junior Suite", "Presidential Suite",
]

AMENITIES = [
    "Free WiFi", "Pool", "Spa & Wellness", "Fitness Center", "Restaurant",
    "Bar/Lounge", "Room Service", "Concierge", "Business Center", "Parking",
    "Pet Friendly", "Airport Shuttle", "Breakfast", "Kitchenette",
    "Air Conditioning", "Balcony", "Ocean View", "Mountain View", "Hot Tub",
    "Tennis Court", "Golf Course", "Beach Access", "24/7 Front Desk",
]

MOCK_RESULT_COUNT = 18


class ExpediaHotelProvider(BaseBookingProvider):
    """Expedia 호텔 검색"""

    name = "Expedia"
    type = SearchType.HOTEL
    id_prefix = "expedia-hotel"

    def __init__(self, api_key: str = MOCK_API_KEY, base_url: str = "https://api.expediagroup.com/v3", **kwargs):
        super().__init__(api_key=api_key, base_url=base_url, **kwargs)

    def _generate_mock_results(self, request: SearchRequest) -> List[BookingOption]:
        rng = self._rng
        nights = self._nights(request.check_in, request.check_out)
        results = []

        for i in range(MOCK_RESULT_COUNT):
            chain = rng.choice(HOTEL_CHAINS)
            room_type = rng.choice(ROOM_TYPES)
            star_rating = rng.randint(2, 5)
            base_price = 75 + rng.random() * 500
            total_price = base_price * nights
            amenities = rng.sample(AMENITIES, 6 + rng.randint(0, 9))

            inclusions = ["Daily housekeeping", "Premium toiletries", "In-room safe"]
            if "Breakfast" in amenities:
                inclusions.append("American breakfast")
            if "Free WiFi" in amenities:
                inclusions.append("Premium WiFi")
            if "Parking" in amenities:
                inclusions.append("Self-parking")

            if rng.random() > 0.3:
                bed_type = "King Bed"
            else:
                bed_type = "Queen Bed" if rng.random() > 0.5 else "Twin Beds"

            details = HotelDetails(
                star_rating=star_rating,
                amenities=amenities,
                room_type=room_type,
                room_size=f"{25 + rng.randint(0, 39)} m²",
                bed_type=bed_type,
                max_occupancy=rng.randint(2, 4),
                inclusions=inclusions,
                policies=HotelPolicies(
                    checkin="3:00 PM" if rng.random() > 0.5 else "4:00 PM",
                    checkout="11:00 AM" if rng.random() > 0.5 else "12:00 PM",
                    cancellation=(
                        "Free cancellation up to 48 hours before check-in"
                        if rng.random() > 0.3 else "Non-refundable"
                    ),
                    pets=(
                        "Pets welcome with additional cleaning fee"
                        if "Pet Friendly" in amenities else "No pets allowed"
                    ),
                ),
                distance=HotelDistance(
                    city_center=f"{rng.random() * 8:.1f} km",
                    airport=f"{8 + rng.random() * 35:.1f} km",
                    landmarks={
                        "Convention Center": f"{rng.random() * 5:.1f} km",
                        "Historic District": f"{rng.random() * 4:.1f} km",
                        "Shopping Mall": f"{rng.random() * 3:.1f} km",
                    },
                ),
            )

            results.append(
                BookingOption(
                    id=f"{self.id_prefix}-{i}",
                    provider=self.name,
                    type=SearchType.HOTEL,
                    title=f"{chain} {request.destination}",
                    description=f"{star_rating}-star {chain} with {room_type}",
                    price=Price(
                        amount=self._money(total_price),
                        currency="USD",
                        breakdown=[
                            PriceBreakdown(
                                component=f"{room_type} ({nights} nights)",
                                amount=self._money(total_price * 0.82),
                            ),
                            PriceBreakdown(component="Resort fees", amount=self._money(total_price * 0.08)),
                            PriceBreakdown(component="Taxes", amount=self._money(total_price * 0.10)),
                        ],
                    ),
                    rating=round(min(5.0, 2.8 + star_rating * 0.4 + rng.random() * 0.9), 1),
                    images=[
                        f"https://example.com/expedia-hotel-{i}-exterior.jpg",
                        f"https://example.com/expedia-hotel-{i}-room.jpg",
                        f"https://example.com/expedia-hotel-{i}-pool.jpg",
                    ],
                    location=Location(
                        address=f"{rng.randint(100, 10098)} {chain} Boulevard, {request.destination}",
                        coordinates=Coordinates(
                            lat=40.7128 + (rng.random() - 0.5) * 0.15,
                            lng=-74.0060 + (rng.random() - 0.5) * 0.15,
                        ),
                    ),
                    availability=Availability(
                        available=rng.random() > 0.03,
                        valid_until=self._valid_until(1.5),
                    ),
                    hotel_details=details,
                )
            )

        return results

    async def _search_real(self, request: SearchRequest) -> List[BookingOption]:
        response = await self._make_request(
            "GET",
            "/properties/search",
            params={
                "destination": request.destination,
                "checkin": request.check_in.date().isoformat(),
                "checkout": request.check_out.date().isoformat(),
                "guests": request.guests or 2,
            },
        )
        return [self._transform_property(prop, request) for prop in response.get("properties") or []]

    def _transform_property(self, prop: Dict[str, Any], request: SearchRequest) -> BookingOption:
        price = prop.get("price") or {}
        coordinates = prop.get("coordinates") or {}
        guest_rating = prop.get("guest_rating")

        return BookingOption(
            id=f"{self.id_prefix}-{prop['property_id']}",
            provider=self.name,
            type=SearchType.HOTEL,
            title=prop.get("name", "Unknown Property"),
            description=prop.get("summary"),
            price=Price(
                amount=self._money(float(price.get("amount") or 0)),
                currency=price.get("currency", "USD"),
            ),
            rating=float(guest_rating) if guest_rating is not None else None,
            location=Location(
                address=prop.get("address", ""),
                coordinates=(
                    Coordinates(lat=float(coordinates["latitude"]), lng=float(coordinates["longitude"]))
                    if "latitude" in coordinates and "longitude" in coordinates else None
                ),
            ),
            availability=Availability(valid_until=self._valid_until(1.5)),
            hotel_details=HotelDetails(
                star_rating=int(prop.get("star_rating") or 0),
                amenities=list(prop.get("amenities") or []),
                room_type=prop.get("room_type", "Standard Room"),
                max_occupancy=int(prop.get("max_occupancy") or request.guests or 2),
                policies=HotelPolicies(
                    checkin=prop.get("checkin_time", "3:00 PM"),
                    checkout=prop.get("checkout_time", "11:00 AM"),
                    cancellation=prop.get("cancellation_policy", "See property policy"),
                ),
            ),
        )

    def _generate_mock_details(self, booking_id: str) -> BookingDetails:
        return BookingDetails(
            id=booking_id,
            provider=self.name,
            type=SearchType.HOTEL,
            title="Marriott Times Square New York",
            description="4-star Marriott hotel in the heart of Times Square",
            price=Price(
                amount=345.75,
                currency="USD",
                breakdown=[
                    PriceBreakdown(component="Deluxe Room (2 nights)", amount=283.32),
                    PriceBreakdown(component="Resort fees", amount=27.64),
                    PriceBreakdown(component="Taxes", amount=34.79),
                ],
            ),
            rating=4.1,
            images=[
                "https://example.com/marriott-times-square-exterior.jpg",
                "https://example.com/marriott-times-square-room.jpg",
            ],
            location=Location(
                address="1535 Broadway, New York, NY 10036",
                coordinates=Coordinates(lat=40.7589, lng=-73.9851),
            ),
            availability=Availability(valid_until=self._valid_until(1.5)),
            hotel_details=HotelDetails(
                star_rating=4,
                amenities=["Free WiFi", "Fitness Center", "Restaurant", "Bar/Lounge", "Concierge", "Parking"],
                room_type="Deluxe Room",
                room_size="32 m²",
                bed_type="King Bed",
                max_occupancy=2,
                inclusions=["Daily housekeeping", "Premium toiletries", "In-room safe", "Premium WiFi"],
                policies=HotelPolicies(
                    checkin="4:00 PM",
                    checkout="12:00 PM",
                    cancellation="Free cancellation up to 48 hours before check-in",
                    pets="No pets allowed",
                ),
                distance=HotelDistance(
                    city_center="0.3 km",
                    airport="19.5 km",
                    landmarks={"Times Square": "0.1 km", "Broadway Theater District": "0.2 km"},
                ),
            ),
            terms="Booking subject to property terms and conditions",
            conditions=[
                "Valid credit card required for incidentals",
                "Photo identification required at check-in",
                "Resort fee collected at the property",
            ],
            contact_info=ContactInfo(
                phone="+1-212-398-1900",
                email="reservations@marriott-timessquare.com",
                website="https://www.marriott.com",
            ),
            booking_deadline=self._valid_until(6),
        )
