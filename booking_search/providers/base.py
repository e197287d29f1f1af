"""Base Provider - Template Method Pattern

공급자 계약:
- BookingProvider: name, type, search(), get_details() (필수)
- SupportsBooking: book() (선택 - isinstance로 확인)

BaseBookingProvider는 공통 흐름(타입/필수 필드 검증 → mock 또는 실제 API)을
구현하고, 공급자별 데이터 생성/응답 변환만 하위 클래스에 맡깁니다.
"""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import httpx

from booking_search.core.config import MOCK_API_KEY
from booking_search.core.exceptions import (
    BookingNotFoundException,
    MissingFieldException,
    ProviderCallException,
    ValidationException,
)
from booking_search.core.logging import logger, mask_secret, sanitize_for_log
from booking_search.schemas.booking_schema import (
    BookingConfirmation,
    BookingDetails,
    BookingOption,
    BookingRequest,
    ProviderSearchResult,
    SearchRequest,
    SearchType,
    new_search_id,
    utcnow,
)


@runtime_checkable
class BookingProvider(Protocol):
    """검색 공급자 계약"""

    name: str
    type: SearchType

    async def search(self, request: SearchRequest) -> ProviderSearchResult: ...

    async def get_details(self, booking_id: str) -> BookingDetails: ...


@runtime_checkable
class SupportsBooking(Protocol):
    """직접 예약 확장 (구현한 공급자만)"""

    async def book(self, request: BookingRequest) -> BookingConfirmation: ...


class BaseBookingProvider(ABC):
    """공급자 어댑터 기본 클래스

    Attributes:
        name: 공급자 이름 (레지스트리 키)
        type: 처리하는 검색 타입
        id_prefix: 이 공급자가 발급하는 옵션 ID 접두어
    """

    name: str = ""
    type: SearchType
    id_prefix: str = ""

    def __init__(
        self,
        api_key: str = MOCK_API_KEY,
        base_url: str = "",
        use_real_api: bool = False,
        timeout_s: float = 10.0,
        seed: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: 공급자 API 키 (mock 키면 항상 mock 모드)
            base_url: API 기본 URL
            use_real_api: 실제 API 호출 여부
            timeout_s: HTTP 요청 타임아웃
            seed: mock 데이터 난수 시드 (테스트 재현용)
            client: 주입할 httpx 클라이언트 (테스트용)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self._use_real_api = use_real_api
        self._rng = random.Random(seed)
        self._client = client

    @property
    def use_real_api(self) -> bool:
        return self._use_real_api and bool(self.api_key) and self.api_key != MOCK_API_KEY

    @property
    def client(self) -> httpx.AsyncClient:
        """HTTP 클라이언트 (첫 사용 시 생성)"""
        if self._client is None:
            self._client = httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout_s)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def search(self, request: SearchRequest) -> ProviderSearchResult:
        """Template method: 검증 → (실제 API | mock) → 결과 봉투

        Raises:
            ValidationException: 지원하지 않는 타입이거나 필수 필드 누락
            ProviderCallException: 실제 API 호출 실패 (mock으로 대체하지 않음)
        """
        if SearchType(request.type) != self.type:
            raise ValidationException(
                "type", f"{self.name} only supports {self.type.value} searches"
            )
        missing = request.missing_fields()
        if missing:
            raise MissingFieldException(missing[0], self.type.value)

        if self.use_real_api:
            results = await self._search_real(request)
            search_id = new_search_id(self.id_prefix)
        else:
            logger.debug(f"[PROVIDER] {self.name}: using mock data")
            results = self._generate_mock_results(request)
            search_id = new_search_id(f"{self.id_prefix}-mock")

        results.sort(key=lambda option: option.price.amount)
        return ProviderSearchResult(provider=self.name, results=results, search_id=search_id)

    async def get_details(self, booking_id: str) -> BookingDetails:
        """옵션 상세 조회

        Raises:
            BookingNotFoundException: 이 공급자가 발급하지 않은 ID
        """
        if not booking_id or not booking_id.startswith(f"{self.id_prefix}-"):
            raise BookingNotFoundException(booking_id)
        return self._generate_mock_details(booking_id)

    async def _make_request(self, method: str, endpoint: str, **kwargs: Any) -> Dict[str, Any]:
        """공급자 API 호출 (Bearer 인증, 2xx가 아니면 예외)

        Raises:
            ProviderCallException: 전송 오류, 비 2xx 응답, JSON 파싱 실패
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **kwargs.pop("headers", {}),
        }
        try:
            response = await self.client.request(method, endpoint, headers=headers, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"[PROVIDER] {self.name} {method} {sanitize_for_log(endpoint)} -> {e.response.status_code} "
                f"(key={mask_secret(self.api_key)})"
            )
            raise ProviderCallException(
                self.name, f"API request failed: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderCallException(self.name, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise ProviderCallException(self.name, f"invalid JSON response: {e}") from e

    @abstractmethod
    def _generate_mock_results(self, request: SearchRequest) -> List[BookingOption]:
        """개발용 합성 결과"""

    @abstractmethod
    async def _search_real(self, request: SearchRequest) -> List[BookingOption]:
        """실제 API 호출 + 응답 변환"""

    @abstractmethod
    def _generate_mock_details(self, booking_id: str) -> BookingDetails:
        """개발용 합성 상세"""

    # 공통 헬퍼

    @staticmethod
    def _money(value: float) -> float:
        return round(value, 2)

    @staticmethod
    def _nights(check_in: datetime, check_out: datetime) -> int:
        """숙박 일수 (올림, 최소 1박)"""
        seconds = (check_out - check_in).total_seconds()
        days = int(-(-seconds // 86400))
        return max(1, days)

    @staticmethod
    def _valid_until(hours: float) -> datetime:
        return utcnow() + timedelta(hours=hours)

    def __repr__(self) -> str:
        mode = "real" if self.use_real_api else "mock"
        return f"{type(self).__name__}({self.name}, {self.type.value}, {mode})"
