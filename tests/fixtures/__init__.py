"""테스트 자산(데이터) 레이어

규칙:
- 로직 없음 (단순 dict/list/primitive)
- 엔진/네트워크 의존 없음
"""

from .booking_options import FLIGHT_OPTIONS, HOTEL_OPTIONS, SEARCH_REQUESTS

__all__ = [
    "FLIGHT_OPTIONS",
    "HOTEL_OPTIONS",
    "SEARCH_REQUESTS",
]
