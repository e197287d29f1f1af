"""Skyscanner flight provider."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from booking_search.core.config import MOCK_API_KEY
from booking_search.core.exceptions import ProviderCallException
from booking_search.core.logging import logger
from booking_search.schemas.booking_schema import (
    Availability,
    Baggage,
    BookingDetails,
    BookingOption,
    CabinClass,
    ContactInfo,
    FlightDetails,
    FlightEndpoint,
    Price,
    PriceBreakdown,
    SearchRequest,
    SearchType,
    StopDetail,
    ensure_utc,
    utcnow,
)
from booking_search.utils.duration import format_duration

from .base import BaseBookingProvider


AIRLINES = [
    ("UA", "United Airlines"),
    ("DL", "Delta Air Lines"),
    ("AA", "American Airlines"),
    ("LH", "Lufthansa"),
    ("BA", "British Airways"),
]

# 경유 횟수별 소요시간 (mock)
DURATION_BY_STOPS = {0: "2h 45m", 1: "5h 20m", 2: "8h 15m"}

MOCK_RESULT_COUNT = 15


class SkyscannerFlightProvider(BaseBookingProvider):
    """Skyscanner 항공 검색

    실제 API: 세션 생성(POST) → 결과 폴링(GET) → Itinerary/Leg/Carrier 조인
    """

    name = "Skyscanner"
    type = SearchType.FLIGHT
    id_prefix = "sky-flight"

    def __init__(
        self,
        api_key: str = MOCK_API_KEY,
        base_url: str = "https://api.skyscanner.net/v1.0",
        poll_attempts: int = 10,
        poll_interval_s: float = 1.0,
        **kwargs,
    ):
        super().__init__(api_key=api_key, base_url=base_url, **kwargs)
        self.poll_attempts = poll_attempts
        self.poll_interval_s = poll_interval_s

    def _generate_mock_results(self, request: SearchRequest) -> List[BookingOption]:
        rng = self._rng
        results = []

        for i in range(MOCK_RESULT_COUNT):
            code, airline = rng.choice(AIRLINES)
            base_price = 300 + rng.random() * 800
            stops = rng.randint(0, 2)

            departure_time = request.departure_date.replace(
                hour=6 + rng.randint(0, 15), minute=0, second=0, microsecond=0
            )
            arrival_time = departure_time + timedelta(hours=3 + stops * 2)
            flight_number = f"{code}{1000 + rng.randint(0, 8998)}"

            details = FlightDetails(
                airline=airline,
                flight_number=flight_number,
                departure=FlightEndpoint(
                    airport=request.origin, time=departure_time, terminal=f"T{rng.randint(1, 3)}"
                ),
                arrival=FlightEndpoint(
                    airport=request.destination, time=arrival_time, terminal=f"T{rng.randint(1, 3)}"
                ),
                duration=DURATION_BY_STOPS[stops],
                stops=stops,
                stop_details=[StopDetail(airport="HUB", duration="1h 30m")] if stops > 0 else [],
                cabin_class=CabinClass.ECONOMY,
                baggage=Baggage(carry="1 x 10kg", checked="1 x 23kg"),
                cancellation_policy="Non-refundable",
            )

            stop_label = "Direct" if stops == 0 else f"{stops} stop{'s' if stops > 1 else ''}"
            results.append(
                BookingOption(
                    id=f"{self.id_prefix}-{i}",
                    provider=self.name,
                    type=SearchType.FLIGHT,
                    title=f"{airline} {flight_number}",
                    description=f"{request.origin} to {request.destination} - {stop_label}",
                    price=Price(
                        amount=self._money(base_price),
                        currency="USD",
                        breakdown=[
                            PriceBreakdown(component="Base fare", amount=self._money(base_price * 0.85)),
                            PriceBreakdown(component="Taxes & fees", amount=self._money(base_price * 0.15)),
                        ],
                    ),
                    rating=round(3.5 + rng.random() * 1.5, 1),
                    availability=Availability(
                        available=rng.random() > 0.1,
                        valid_until=self._valid_until(24),
                    ),
                    flight_details=details,
                )
            )

        return results

    async def _search_real(self, request: SearchRequest) -> List[BookingOption]:
        session = await self._make_request(
            "POST",
            "/pricing/v1.0",
            json={
                "country": "US",
                "currency": "USD",
                "locale": "en-US",
                "originplace": request.origin,
                "destinationplace": request.destination,
                "outbounddate": request.departure_date.date().isoformat(),
                "inbounddate": request.return_date.date().isoformat() if request.return_date else None,
                "adults": request.passengers or 1,
            },
        )
        session_key = session.get("SessionKey")
        if not session_key:
            raise ProviderCallException(self.name, "pricing session was not created")

        response = await self._poll_for_results(session_key)
        return self._transform_response(response)

    async def _poll_for_results(self, session_key: str) -> Dict[str, Any]:
        for attempt in range(1, self.poll_attempts + 1):
            response = await self._make_request(
                "GET",
                f"/pricing/uk2/v1.0/{session_key}",
                params={"pageIndex": 0, "pageSize": 10},
            )
            if response.get("Status") == "UpdatesComplete" or response.get("Itineraries"):
                return response
            logger.debug(f"[PROVIDER] {self.name}: results not ready (poll {attempt}/{self.poll_attempts})")
            await asyncio.sleep(self.poll_interval_s)

        raise ProviderCallException(self.name, "timed out waiting for pricing results")

    def _transform_response(self, response: Dict[str, Any]) -> List[BookingOption]:
        legs = {leg.get("Id"): leg for leg in response.get("Legs") or []}
        carriers = {carrier.get("Id"): carrier for carrier in response.get("Carriers") or []}
        currency = (response.get("Query") or {}).get("Currency", "USD")

        results = []
        for itinerary in response.get("Itineraries") or []:
            leg = legs.get(itinerary.get("OutboundLegId"))
            if leg is None:
                continue
            carrier = carriers.get((leg.get("Carriers") or [None])[0]) or {}
            pricing = (itinerary.get("PricingOptions") or [{}])[0]
            price = float(pricing.get("Price") or 0)
            flight_numbers = leg.get("FlightNumbers") or [{}]
            flight_number = flight_numbers[0].get("FlightNumber", "N/A")
            airline = carrier.get("Name", "Unknown Airline")

            results.append(
                BookingOption(
                    id=f"{self.id_prefix}-{itinerary['OutboundLegId']}",
                    provider=self.name,
                    type=SearchType.FLIGHT,
                    title=f"{airline} {flight_number}",
                    description=f"{leg.get('OriginStation', '')} to {leg.get('DestinationStation', '')}",
                    price=Price(
                        amount=self._money(price),
                        currency=currency,
                        breakdown=[
                            PriceBreakdown(component="Base fare", amount=self._money(price * 0.85)),
                            PriceBreakdown(component="Taxes & fees", amount=self._money(price * 0.15)),
                        ],
                    ),
                    availability=Availability(valid_until=self._valid_until(24)),
                    flight_details=FlightDetails(
                        airline=airline,
                        flight_number=flight_number,
                        departure=FlightEndpoint(
                            airport=leg.get("OriginStation", ""),
                            time=_parse_time(leg.get("Departure")),
                            terminal=leg.get("DepartureTerminal"),
                        ),
                        arrival=FlightEndpoint(
                            airport=leg.get("DestinationStation", ""),
                            time=_parse_time(leg.get("Arrival")),
                            terminal=leg.get("ArrivalTerminal"),
                        ),
                        duration=format_duration(int(leg.get("Duration") or 0)),
                        stops=len(leg.get("Stops") or []),
                        baggage=Baggage(carry="1 x 10kg", checked="1 x 23kg"),
                        cancellation_policy="Terms vary by airline",
                    ),
                )
            )
        return results

    def _generate_mock_details(self, booking_id: str) -> BookingDetails:
        departure = datetime(2025, 8, 15, 10, 30, tzinfo=timezone.utc)
        return BookingDetails(
            id=booking_id,
            provider=self.name,
            type=SearchType.FLIGHT,
            title="United Airlines UA1234",
            description="LAX to JFK - Direct",
            price=Price(
                amount=456.78,
                currency="USD",
                breakdown=[
                    PriceBreakdown(component="Base fare", amount=387.76),
                    PriceBreakdown(component="Taxes & fees", amount=69.02),
                ],
            ),
            rating=4.2,
            availability=Availability(valid_until=self._valid_until(24)),
            flight_details=FlightDetails(
                airline="United Airlines",
                flight_number="UA1234",
                departure=FlightEndpoint(airport="LAX", time=departure, terminal="T7"),
                arrival=FlightEndpoint(
                    airport="JFK", time=departure + timedelta(hours=8, minutes=15), terminal="T4"
                ),
                duration="5h 15m",
                stops=0,
                baggage=Baggage(carry="1 x 10kg", checked="1 x 23kg"),
                cancellation_policy="Cancel up to 24 hours before departure for full refund",
            ),
            terms="Booking subject to airline terms and conditions",
            conditions=[
                "Valid photo ID required for domestic flights",
                "Passport required for international flights",
                "Check-in opens 24 hours before departure",
                "Arrive at airport 2 hours before domestic, 3 hours before international flights",
            ],
            contact_info=ContactInfo(
                phone="+1-800-UNITED-1",
                email="support@united.com",
                website="https://www.united.com",
            ),
            booking_deadline=self._valid_until(12),
        )


def _parse_time(value: Optional[str]) -> datetime:
    if not value:
        return utcnow()
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return utcnow()
