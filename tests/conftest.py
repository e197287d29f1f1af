"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (공급자, 시계, sleep)

금지:
- 실제 네트워크 호출
- 실제 Redis 연결
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# settings는 import 시점에 생성되므로 import 전에 설정
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("HEALTH_CHECK_INTERVAL_S", "0")

from booking_search.core.exceptions import BookingNotFoundException  # noqa: E402
from booking_search.schemas.booking_schema import (  # noqa: E402
    BookingDetails,
    BookingOption,
    ProviderSearchResult,
    SearchRequest,
    SearchType,
)

from tests.fixtures import FLIGHT_OPTIONS, HOTEL_OPTIONS, SEARCH_REQUESTS  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


class FakeClock:
    """수동으로 진행시키는 시계 (CircuitBreaker/SearchCache 주입용)"""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeProvider:
    """호출 횟수와 실패를 제어하는 가짜 공급자

    - fail_times: 처음 N번 호출은 예외
    - always_fail: 항상 예외
    - delay: 응답 전 대기 (초)
    """

    def __init__(
        self,
        name: str,
        type: SearchType = SearchType.HOTEL,
        options: Optional[List[Dict[str, Any]]] = None,
        fail_times: int = 0,
        always_fail: bool = False,
        delay: float = 0.0,
    ):
        self.name = name
        self.type = type
        self.options = options or []
        self.fail_times = fail_times
        self.always_fail = always_fail
        self.delay = delay
        self.calls = 0
        self.requests: List[SearchRequest] = []

    async def search(self, request: SearchRequest) -> ProviderSearchResult:
        self.calls += 1
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.always_fail or self.calls <= self.fail_times:
            raise RuntimeError(f"{self.name} upstream 503")

        results = [
            BookingOption.model_validate({**option, "provider": self.name})
            for option in self.options
        ]
        return ProviderSearchResult(provider=self.name, results=results)

    async def get_details(self, booking_id: str) -> BookingDetails:
        for option in self.options:
            if option["id"] == booking_id:
                return BookingDetails.model_validate(
                    {**option, "provider": self.name, "terms": "Test terms"}
                )
        raise BookingNotFoundException(booking_id)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider():
    """FakeProvider 클래스 (테스트마다 필요한 인자로 생성)"""
    return FakeProvider


@pytest.fixture
def sleep_calls():
    """backoff 대기 시간을 기록하는 sleep"""
    calls: List[float] = []

    async def _sleep(seconds: float) -> None:
        calls.append(seconds)

    _sleep.calls = calls
    return _sleep


@pytest.fixture
def hotel_options() -> List[Dict[str, Any]]:
    return [dict(option) for option in HOTEL_OPTIONS]


@pytest.fixture
def flight_options() -> List[Dict[str, Any]]:
    return [dict(option) for option in FLIGHT_OPTIONS]


@pytest.fixture
def hotel_request() -> SearchRequest:
    return SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])


@pytest.fixture
def flight_request() -> SearchRequest:
    return SearchRequest.model_validate(SEARCH_REQUESTS["flight"])


@pytest.fixture
def activity_request() -> SearchRequest:
    return SearchRequest.model_validate(SEARCH_REQUESTS["activity"])


@pytest.fixture
def build_options():
    """dict 목록 → BookingOption 목록"""

    def _build(options: List[Dict[str, Any]]) -> List[BookingOption]:
        return [BookingOption.model_validate(option) for option in options]

    return _build
