"""Pydantic 스키마 정의 - 검색 요청/필터/예약 옵션/집계 결과"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from booking_search.utils.duration import parse_duration_minutes


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """naive 시각은 UTC로 간주 (aware/naive 혼합 비교 방지)"""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_search_id(prefix: str) -> str:
    """검색 ID 생성 (예: agg-3f2a...)"""
    return f"{prefix}-{uuid.uuid4().hex}"


class SearchType(str, Enum):
    """검색/공급자 타입"""

    FLIGHT = "flight"
    HOTEL = "hotel"
    ACTIVITY = "activity"


class StopOption(str, Enum):
    """경유 횟수 버킷"""

    DIRECT = "direct"
    ONE_STOP = "1_stop"
    MULTI_STOP = "multi_stop"

    @classmethod
    def from_stops(cls, stops: int) -> "StopOption":
        if stops <= 0:
            return cls.DIRECT
        if stops == 1:
            return cls.ONE_STOP
        return cls.MULTI_STOP


class SortBy(str, Enum):
    PRICE = "price"
    RATING = "rating"
    DURATION = "duration"
    DEPARTURE_TIME = "departure_time"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class CabinClass(str, Enum):
    ECONOMY = "economy"
    PREMIUM = "premium"
    BUSINESS = "business"
    FIRST = "first"


# 검색 타입별 필수 필드 (디스패치 전에 검증)
REQUIRED_FIELDS: Dict[SearchType, tuple] = {
    SearchType.FLIGHT: ("origin", "destination", "departure_date"),
    SearchType.HOTEL: ("destination", "check_in", "check_out"),
    SearchType.ACTIVITY: ("destination",),
}

DATE_FIELDS = ("departure_date", "return_date", "check_in", "check_out")


# ============================================================================
# 검색 요청 / 필터
# ============================================================================

class Budget(BaseModel):
    """예산 범위"""
    min: float = Field(0, ge=0, description="최소 금액")
    max: float = Field(..., ge=0, description="최대 금액")
    currency: str = Field("USD", min_length=3, max_length=3, description="통화 코드")


class SearchRequest(BaseModel):
    """검색 파라미터 (type으로 구분)"""
    type: SearchType
    origin: Optional[str] = Field(None, max_length=100, description="출발지 (항공)")
    destination: Optional[str] = Field(None, max_length=200, description="도착지/목적지")
    departure_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    guests: Optional[int] = Field(None, ge=1, le=50)
    passengers: Optional[int] = Field(None, ge=1, le=50)
    budget: Optional[Budget] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(*DATE_FIELDS)
    @classmethod
    def validate_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def normalized(self) -> "SearchRequest":
        """문자열 필드 공백 제거 (빈 문자열은 None)"""
        updates: Dict[str, Any] = {}
        for field in ("origin", "destination"):
            value = getattr(self, field)
            if isinstance(value, str):
                stripped = value.strip()
                updates[field] = stripped or None
        return self.model_copy(update=updates) if updates else self

    def missing_fields(self) -> List[str]:
        """이 타입에 필요한데 비어있는 필드 목록"""
        return [
            field for field in REQUIRED_FIELDS[self.type]
            if getattr(self, field) in (None, "")
        ]


class PriceRangeFilter(BaseModel):
    min: float = Field(0, ge=0)
    max: Optional[float] = Field(None, ge=0, description="None이면 상한 없음")

    @model_validator(mode="after")
    def validate_bounds(self) -> "PriceRangeFilter":
        if self.max is not None and self.max < self.min:
            raise ValueError("price_range.max must be >= price_range.min")
        return self


class RatingFilter(BaseModel):
    min: float = Field(..., ge=0, le=5)


class SearchFilters(BaseModel):
    """집계 결과에 대한 사후 필터/정렬 (공급자 호출에는 영향 없음)"""
    providers: Optional[List[str]] = Field(None, description="공급자 허용 목록")
    price_range: Optional[PriceRangeFilter] = None
    rating: Optional[RatingFilter] = None
    amenities: Optional[List[str]] = Field(None, description="호텔 필수 편의시설")
    airlines: Optional[List[str]] = Field(None, description="항공사 허용 목록")
    stop_options: Optional[List[StopOption]] = None
    sort_by: Optional[SortBy] = None
    sort_order: Optional[SortOrder] = None


# ============================================================================
# 예약 옵션
# ============================================================================

class PriceBreakdown(BaseModel):
    component: str
    amount: float
    description: Optional[str] = None


class Price(BaseModel):
    amount: float = Field(..., ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    breakdown: List[PriceBreakdown] = Field(default_factory=list)


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class Location(BaseModel):
    address: str
    coordinates: Optional[Coordinates] = None


class Availability(BaseModel):
    available: bool = True
    last_updated: datetime = Field(default_factory=utcnow)
    valid_until: Optional[datetime] = None


class FlightEndpoint(BaseModel):
    airport: str
    time: datetime
    terminal: Optional[str] = None

    @field_validator("time")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class StopDetail(BaseModel):
    airport: str
    duration: str


class Baggage(BaseModel):
    carry: str
    checked: str


class FlightDetails(BaseModel):
    airline: str
    flight_number: str
    aircraft: Optional[str] = None
    departure: FlightEndpoint
    arrival: FlightEndpoint
    duration: str = Field(..., description="자유 텍스트 소요시간 (예: 2h 45m)")
    stops: int = Field(0, ge=0)
    stop_details: List[StopDetail] = Field(default_factory=list)
    cabin_class: CabinClass = CabinClass.ECONOMY
    baggage: Baggage
    cancellation_policy: Optional[str] = None

    @property
    def duration_minutes(self) -> Optional[int]:
        return parse_duration_minutes(self.duration)


class HotelPolicies(BaseModel):
    checkin: str
    checkout: str
    cancellation: str
    pets: Optional[str] = None


class HotelDistance(BaseModel):
    city_center: Optional[str] = None
    airport: Optional[str] = None
    landmarks: Dict[str, str] = Field(default_factory=dict)


class HotelDetails(BaseModel):
    star_rating: int = Field(..., ge=0, le=5)
    amenities: List[str] = Field(default_factory=list)
    room_type: str
    room_size: Optional[str] = None
    bed_type: Optional[str] = None
    max_occupancy: int = Field(..., ge=1)
    inclusions: List[str] = Field(default_factory=list)
    policies: HotelPolicies
    distance: Optional[HotelDistance] = None


class GroupSize(BaseModel):
    min: int = Field(..., ge=1)
    max: int = Field(..., ge=1)


class ActivityDetails(BaseModel):
    duration: str
    category: str
    difficulty: Optional[Literal["easy", "moderate", "challenging"]] = None
    min_age: Optional[int] = Field(None, ge=0)
    group_size: Optional[GroupSize] = None
    inclusions: List[str] = Field(default_factory=list)
    meeting_point: str
    languages: List[str] = Field(default_factory=list)
    cancellation_policy: str


_DETAIL_FIELDS = {
    SearchType.FLIGHT: "flight_details",
    SearchType.HOTEL: "hotel_details",
    SearchType.ACTIVITY: "activity_details",
}


class BookingOption(BaseModel):
    """정규화된 검색 결과 1건"""
    id: str
    provider: str
    type: SearchType
    title: str
    description: Optional[str] = None
    price: Price
    rating: Optional[float] = Field(None, ge=0, le=5)
    images: List[str] = Field(default_factory=list)
    location: Optional[Location] = None
    availability: Availability = Field(default_factory=Availability)
    flight_details: Optional[FlightDetails] = None
    hotel_details: Optional[HotelDetails] = None
    activity_details: Optional[ActivityDetails] = None

    @model_validator(mode="after")
    def validate_detail_variant(self) -> "BookingOption":
        """type과 상세 정보 variant 일치 검증 (정확히 하나만)"""
        populated = [name for name in _DETAIL_FIELDS.values() if getattr(self, name) is not None]
        expected = _DETAIL_FIELDS[self.type]
        if populated != [expected]:
            raise ValueError(
                f"{self.type.value} option must populate exactly '{expected}' (got {populated or 'none'})"
            )
        return self

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.flight_details is not None:
            return self.flight_details.duration_minutes
        if self.activity_details is not None:
            return parse_duration_minutes(self.activity_details.duration)
        return None

    @property
    def departure_time(self) -> Optional[datetime]:
        if self.flight_details is not None:
            return self.flight_details.departure.time
        return None


class ContactInfo(BaseModel):
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None


class BookingDetails(BookingOption):
    """옵션 상세 (약관/연락처 포함)"""
    terms: str
    conditions: List[str] = Field(default_factory=list)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    booking_deadline: Optional[datetime] = None


# ============================================================================
# 직접 예약 (선택 기능 - SupportsBooking 공급자 전용)
# ============================================================================

class ContactAddress(BaseModel):
    street: str
    city: str
    country: str
    postal_code: str


class ContactDetails(BaseModel):
    email: str = Field(..., max_length=320)
    phone: str = Field(..., max_length=50)
    address: Optional[ContactAddress] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class PaymentMethodType(str, Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    BANK_TRANSFER = "bank_transfer"


class PaymentMethod(BaseModel):
    type: PaymentMethodType
    token: Optional[str] = Field(None, description="토큰화된 결제수단")
    card_last4: Optional[str] = Field(None, min_length=4, max_length=4)


class TravellerInfo(BaseModel):
    title: str
    first_name: str
    last_name: str
    date_of_birth: Optional[datetime] = None
    special_requests: Optional[str] = None


class BookingRequest(BaseModel):
    option_id: str
    travellers: List[TravellerInfo] = Field(default_factory=list)
    contact_details: ContactDetails
    payment_method: PaymentMethod
    special_requests: Optional[str] = Field(None, max_length=1000)


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    FAILED = "failed"


class BookingConfirmation(BaseModel):
    booking_id: str
    confirmation_number: str
    status: BookingStatus
    total_amount: float
    currency: str
    booking_details: BookingDetails


# ============================================================================
# 공급자 응답 / 집계 결과
# ============================================================================

class ProviderSearchResult(BaseModel):
    """공급자 1곳의 응답 봉투"""
    provider: str
    results: List[BookingOption] = Field(default_factory=list)
    search_id: str = Field(default_factory=lambda: new_search_id("search"))
    timestamp: datetime = Field(default_factory=utcnow)
    total_results: int = 0
    error: Optional[str] = None

    @model_validator(mode="after")
    def validate_error_envelope(self) -> "ProviderSearchResult":
        """error가 있으면 결과는 비어 있어야 함 (부분 실패 금지)"""
        if self.error and self.results:
            raise ValueError("provider result with an error must not carry options")
        self.total_results = len(self.results)
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, provider: str, error: str) -> "ProviderSearchResult":
        """실패 결과 생성"""
        return cls(provider=provider, search_id=new_search_id("error"), error=error)


class PriceRange(BaseModel):
    min: float = 0
    max: float = 0
    currency: str = "USD"


class FilterMetadata(BaseModel):
    price_range: PriceRange = Field(default_factory=PriceRange)
    providers: List[str] = Field(default_factory=list)
    types: List[SearchType] = Field(default_factory=list)
    ratings: List[float] = Field(default_factory=list)


class AggregatedSearchResult(BaseModel):
    """오케스트레이터 최종 결과"""
    search_id: str = Field(default_factory=lambda: new_search_id("agg"))
    timestamp: datetime = Field(default_factory=utcnow)
    total_providers: int
    total_results: int
    results: List[BookingOption] = Field(default_factory=list)
    provider_results: List[ProviderSearchResult] = Field(default_factory=list)
    filters: FilterMetadata = Field(default_factory=FilterMetadata)

    def provider_result(self, provider: str) -> Optional[ProviderSearchResult]:
        for result in self.provider_results:
            if result.provider == provider:
                return result
        return None


class ProviderHealth(BaseModel):
    """공급자 상태 (회로 상태 + 마지막 헬스체크)"""
    name: str
    type: SearchType
    healthy: bool
    breaker_state: str
    failure_count: int = 0
    last_checked: Optional[datetime] = None
    last_error: Optional[str] = None
    breaker: Optional[Dict[str, Any]] = None
