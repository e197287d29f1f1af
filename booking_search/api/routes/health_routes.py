"""헬스 체크 엔드포인트"""
from fastapi import APIRouter, Depends

from booking_search import __version__
from booking_search.api.routes.booking_routes import get_booking_service
from booking_search.schemas.api_schema import HealthResponse
from booking_search.schemas.booking_schema import utcnow
from booking_search.services.impl.booking_search_service import BookingSearchService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(service: BookingSearchService = Depends(get_booking_service)):
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 공급자 상태 (회로 OPEN 또는 마지막 헬스체크 실패 시 degraded)
    """
    status = service.get_provider_health_status()
    healthy = sum(1 for s in status.values() if s.healthy)

    if not status:
        overall = "error"
    elif healthy == len(status):
        overall = "ok"
    else:
        overall = "degraded"

    return HealthResponse(
        status=overall,
        timestamp=utcnow(),
        version=__version__,
        providers=len(status),
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "Booking Search Service",
        "version": __version__,
        "docs": "/docs",
    }
