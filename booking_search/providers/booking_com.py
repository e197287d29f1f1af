"""Booking.com hotel provider."""

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


HOTEL_TYPES = [
    "Luxury Hotel", "Business Hotel", "Boutique Hotel", "Resort", "Hostel",
    "Bed & Breakfast", "Apartment", "Villa", "Guesthouse", "Budget Hotel",
]

AMENITIES = [
    "Free WiFi", "Swimming Pool", "Spa", "Fitness Center", "Restaurant",
    "Bar", "Room Service", "Concierge", "Business Center", "Parking",
    "Pet Friendly", "Airport Shuttle", "Breakfast Included", "Kitchen",
    "Air Conditioning", "Balcony", "Ocean View", "City View",
]

MOCK_RESULT_COUNT = 20


class BookingComHotelProvider(BaseBookingProvider):
    """Booking.com 호텔 검색"""

    name = "Booking.com"
    type = SearchType.HOTEL
    id_prefix = "booking-hotel"

    def __init__(self, api_key: str = MOCK_API_KEY, base_url: str = "https://api.booking.com/v1", **kwargs):
        super().__init__(api_key=api_key, base_url=base_url, **kwargs)

    def _generate_mock_results(self, request: SearchRequest) -> List[BookingOption]:
        rng = self._rng
        nights = self._nights(request.check_in, request.check_out)
        results = []

        for i in range(MOCK_RESULT_COUNT):
            hotel_type = rng.choice(HOTEL_TYPES)
            star_rating = rng.randint(1, 5)
            base_price = 50 + rng.random() * 400
            total_price = base_price * nights
            amenities = rng.sample(AMENITIES, 5 + rng.randint(0, 7))

            inclusions = ["Daily housekeeping", "Complimentary toiletries"]
            if "Breakfast Included" in amenities:
                inclusions.append("Continental breakfast")
            if "Free WiFi" in amenities:
                inclusions.append("High-speed internet")

            details = HotelDetails(
                star_rating=star_rating,
                amenities=amenities,
                room_type="Standard Double Room",
                room_size=f"{20 + rng.randint(0, 29)} m²",
                bed_type="Queen Bed" if rng.random() > 0.5 else "Twin Beds",
                max_occupancy=request.guests or 2,
                inclusions=inclusions,
                policies=HotelPolicies(
                    checkin="3:00 PM",
                    checkout="11:00 AM",
                    cancellation="Free cancellation up to 24 hours before check-in",
                    pets="Pets allowed with additional fee" if "Pet Friendly" in amenities else "No pets allowed",
                ),
                distance=HotelDistance(
                    city_center=f"{rng.random() * 5:.1f} km",
                    airport=f"{5 + rng.random() * 25:.1f} km",
                    landmarks={
                        "Main Square": f"{rng.random() * 2:.1f} km",
                        "Shopping District": f"{rng.random() * 3:.1f} km",
                        "Beach": f"{rng.random() * 10:.1f} km",
                    },
                ),
            )

            results.append(
                BookingOption(
                    id=f"{self.id_prefix}-{i}",
                    provider=self.name,
                    type=SearchType.HOTEL,
                    title=f"{hotel_type} {request.destination}",
                    description=f"{star_rating}-star {hotel_type.lower()} in {request.destination}",
                    price=Price(
                        amount=self._money(total_price),
                        currency="USD",
                        breakdown=[
                            PriceBreakdown(
                                component=f"Room rate ({nights} nights)",
                                amount=self._money(total_price * 0.85),
                            ),
                            PriceBreakdown(component="Taxes & fees", amount=self._money(total_price * 0.15)),
                        ],
                    ),
                    rating=round(min(5.0, 2.5 + star_rating * 0.5 + rng.random() * 0.8), 1),
                    images=[
                        f"https://example.com/hotel-{i}-exterior.jpg",
                        f"https://example.com/hotel-{i}-room.jpg",
                        f"https://example.com/hotel-{i}-amenity.jpg",
                    ],
                    location=Location(
                        address=f"{rng.randint(1, 999)} Hotel Street, {request.destination}",
                        coordinates=Coordinates(
                            lat=40.7128 + (rng.random() - 0.5) * 0.1,
                            lng=-74.0060 + (rng.random() - 0.5) * 0.1,
                        ),
                    ),
                    availability=Availability(
                        available=rng.random() > 0.05,
                        valid_until=self._valid_until(2),
                    ),
                    hotel_details=details,
                )
            )

        return results

    async def _search_real(self, request: SearchRequest) -> List[BookingOption]:
        response = await self._make_request(
            "GET",
            "/hotels/search",
            params={
                "destination": request.destination,
                "checkin": request.check_in.date().isoformat(),
                "checkout": request.check_out.date().isoformat(),
                "guests": request.guests or 2,
            },
        )
        return [self._transform_hotel(hotel, request) for hotel in response.get("hotels") or []]

    def _transform_hotel(self, hotel: Dict[str, Any], request: SearchRequest) -> BookingOption:
        # review_score는 10점 만점
        review_score = hotel.get("review_score")
        rating = round(float(review_score) / 2, 1) if review_score is not None else None
        star_rating = int(hotel.get("class") or 0)
        coordinates = None
        if hotel.get("latitude") is not None and hotel.get("longitude") is not None:
            coordinates = Coordinates(lat=float(hotel["latitude"]), lng=float(hotel["longitude"]))

        return BookingOption(
            id=f"{self.id_prefix}-{hotel['hotel_id']}",
            provider=self.name,
            type=SearchType.HOTEL,
            title=hotel.get("hotel_name", "Unknown Hotel"),
            description=f"{star_rating}-star hotel in {hotel.get('city', request.destination)}",
            price=Price(
                amount=self._money(float(hotel.get("min_total_price") or 0)),
                currency=hotel.get("currencycode", "USD"),
            ),
            rating=rating,
            location=Location(address=hotel.get("address", ""), coordinates=coordinates),
            availability=Availability(valid_until=self._valid_until(2)),
            hotel_details=HotelDetails(
                star_rating=star_rating,
                amenities=list(hotel.get("facilities") or []),
                room_type=hotel.get("room_type", "Standard Room"),
                max_occupancy=request.guests or 2,
                policies=HotelPolicies(
                    checkin=hotel.get("checkin_from", "3:00 PM"),
                    checkout=hotel.get("checkout_until", "11:00 AM"),
                    cancellation=hotel.get("cancellation_policy", "See hotel policy"),
                ),
            ),
        )

    def _generate_mock_details(self, booking_id: str) -> BookingDetails:
        return BookingDetails(
            id=booking_id,
            provider=self.name,
            type=SearchType.HOTEL,
            title="Grand Plaza Hotel New York",
            description="4-star luxury hotel in Manhattan",
            price=Price(
                amount=289.50,
                currency="USD",
                breakdown=[
                    PriceBreakdown(component="Room rate (2 nights)", amount=252.08),
                    PriceBreakdown(component="Taxes & fees", amount=37.42),
                ],
            ),
            rating=4.3,
            images=[
                "https://example.com/grand-plaza-exterior.jpg",
                "https://example.com/grand-plaza-lobby.jpg",
                "https://example.com/grand-plaza-room.jpg",
            ],
            location=Location(
                address="768 5th Avenue, New York, NY 10019",
                coordinates=Coordinates(lat=40.7614, lng=-73.9776),
            ),
            availability=Availability(valid_until=self._valid_until(2)),
            hotel_details=HotelDetails(
                star_rating=4,
                amenities=[
                    "Free WiFi", "Fitness Center", "Restaurant", "Bar", "Room Service",
                    "Concierge", "Business Center", "Valet Parking", "Spa", "Air Conditioning",
                ],
                room_type="Deluxe King Room",
                room_size="35 m²",
                bed_type="King Bed",
                max_occupancy=2,
                inclusions=[
                    "Daily housekeeping",
                    "Complimentary toiletries",
                    "High-speed internet",
                    "Access to fitness center",
                    "Newspaper delivery",
                ],
                policies=HotelPolicies(
                    checkin="3:00 PM",
                    checkout="11:00 AM",
                    cancellation="Free cancellation up to 24 hours before check-in",
                    pets="Small pets allowed with $50 daily fee",
                ),
                distance=HotelDistance(
                    city_center="0.5 km",
                    airport="18.2 km",
                    landmarks={
                        "Central Park": "0.2 km",
                        "Times Square": "1.1 km",
                        "Empire State Building": "1.8 km",
                    },
                ),
            ),
            terms="Booking subject to hotel terms and conditions",
            conditions=[
                "Valid credit card required at check-in",
                "Government-issued photo ID required",
                "Incidental charges may apply",
                "Minimum age for check-in is 21 years",
            ],
            contact_info=ContactInfo(
                phone="+1-212-759-3000",
                email="reservations@grandplazany.com",
                website="https://www.grandplazanewyork.com",
            ),
            booking_deadline=self._valid_until(6),
        )
