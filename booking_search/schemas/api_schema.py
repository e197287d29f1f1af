"""HTTP 요청/응답 스키마"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_search.schemas.booking_schema import (
    AggregatedSearchResult,
    Budget,
    BookingDetails,
    ContactDetails,
    FilterMetadata,
    PaymentMethod,
    SearchFilters,
    SearchRequest,
    SearchType,
    TravellerInfo,
    ensure_utc,
)


class FlightSearchRequest(BaseModel):
    """항공 검색 요청"""
    origin: str = Field(..., min_length=1, max_length=100)
    destination: str = Field(..., min_length=1, max_length=100)
    departure_date: datetime
    return_date: Optional[datetime] = None
    passengers: int = Field(1, ge=1, le=50)
    budget: Optional[Budget] = None
    filters: Optional[SearchFilters] = None

    @field_validator("departure_date", "return_date")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def to_search_request(self) -> SearchRequest:
        return SearchRequest(
            type=SearchType.FLIGHT,
            origin=self.origin,
            destination=self.destination,
            departure_date=self.departure_date,
            return_date=self.return_date,
            passengers=self.passengers,
            budget=self.budget,
        )


class HotelSearchRequest(BaseModel):
    """호텔 검색 요청"""
    destination: str = Field(..., min_length=1, max_length=200)
    check_in: datetime
    check_out: datetime
    guests: int = Field(1, ge=1, le=50)
    budget: Optional[Budget] = None
    filters: Optional[SearchFilters] = None

    @field_validator("check_in", "check_out")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_stay(self) -> "HotelSearchRequest":
        if self.check_out <= self.check_in:
            raise ValueError("Check-out date must be after check-in date")
        return self

    def to_search_request(self) -> SearchRequest:
        return SearchRequest(
            type=SearchType.HOTEL,
            destination=self.destination,
            check_in=self.check_in,
            check_out=self.check_out,
            guests=self.guests,
            budget=self.budget,
        )


class ActivitySearchRequest(BaseModel):
    """액티비티 검색 요청"""
    destination: str = Field(..., min_length=1, max_length=200)
    check_in: Optional[datetime] = None
    guests: int = Field(1, ge=1, le=50)
    budget: Optional[Budget] = None
    filters: Optional[SearchFilters] = None

    @field_validator("check_in")
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def to_search_request(self) -> SearchRequest:
        return SearchRequest(
            type=SearchType.ACTIVITY,
            destination=self.destination,
            check_in=self.check_in,
            guests=self.guests,
            budget=self.budget,
        )


class SearchResponse(BaseModel):
    """검색 응답"""
    success: bool = True
    search_id: str
    timestamp: datetime
    total_providers: int
    total_results: int
    results: List[Any]
    filters: FilterMetadata
    provider_errors: Dict[str, str] = Field(default_factory=dict)
    search_params: SearchRequest

    @classmethod
    def from_aggregate(cls, result: AggregatedSearchResult, params: SearchRequest) -> "SearchResponse":
        return cls(
            search_id=result.search_id,
            timestamp=result.timestamp,
            total_providers=result.total_providers,
            total_results=result.total_results,
            results=[option.model_dump(mode="json") for option in result.results],
            filters=result.filters,
            provider_errors={
                r.provider: r.error for r in result.provider_results if r.error is not None
            },
            search_params=params,
        )


class BookingDetailsResponse(BaseModel):
    success: bool = True
    booking_id: str
    provider: str
    details: BookingDetails


class BookingConfirmRequest(BaseModel):
    """예약 확정 요청"""
    provider: str = Field(..., min_length=1)
    travellers: List[TravellerInfo] = Field(default_factory=list)
    contact_details: ContactDetails
    payment_method: PaymentMethod
    special_requests: Optional[str] = Field(None, max_length=1000)


class ConfigUpdateRequest(BaseModel):
    """런타임 설정 변경"""
    enable_failover: Optional[bool] = None
    max_retries: Optional[int] = Field(None, description="0~5로 보정")
    cache_ttl_seconds: Optional[int] = Field(None, gt=0)


class MessageResponse(BaseModel):
    success: bool = True
    message: str
    timestamp: datetime
    details: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_code: str
    message: str


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    providers: int = 0
