"""Booking Routes - HTTP → BookingSearchService

HTTP Layer는 요청을 검증/변환해 서비스에 위임하는 Translator 역할만 수행합니다.
에러 응답 변환은 api.error_handlers가 담당합니다.
"""

import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from booking_search.core.config import settings
from booking_search.core.exceptions import SearchTimeoutException
from booking_search.core.logging import logger
from booking_search.schemas.api_schema import (
    ActivitySearchRequest,
    BookingConfirmRequest,
    BookingDetailsResponse,
    ConfigUpdateRequest,
    FlightSearchRequest,
    HotelSearchRequest,
    MessageResponse,
    SearchResponse,
)
from booking_search.schemas.booking_schema import (
    BookingConfirmation,
    BookingRequest,
    SearchFilters,
    SearchRequest,
    utcnow,
)
from booking_search.services.impl.booking_search_service import BookingSearchService

router = APIRouter(prefix="/api/v1/booking", tags=["booking"])


def get_booking_service(request: Request) -> BookingSearchService:
    """lifespan에서 생성한 서비스 인스턴스"""
    return request.app.state.booking_service


async def _run_search(
    service: BookingSearchService,
    params: SearchRequest,
    filters: Optional[SearchFilters],
) -> SearchResponse:
    timeout_s = settings.api_search_timeout_s
    try:
        result = await asyncio.wait_for(service.search(params, filters), timeout=timeout_s)
    except asyncio.TimeoutError:
        raise SearchTimeoutException(timeout_s)

    logger.info(
        f"[API] {params.type.value} search {result.search_id}: "
        f"{result.total_results} results from {result.total_providers} providers"
    )
    return SearchResponse.from_aggregate(result, params)


@router.post("/flights/search", response_model=SearchResponse)
async def search_flights(
    body: FlightSearchRequest,
    service: BookingSearchService = Depends(get_booking_service),
):
    """항공 검색"""
    return await _run_search(service, body.to_search_request(), body.filters)


@router.post("/hotels/search", response_model=SearchResponse)
async def search_hotels(
    body: HotelSearchRequest,
    service: BookingSearchService = Depends(get_booking_service),
):
    """호텔 검색 (체크아웃은 체크인 이후여야 함)"""
    return await _run_search(service, body.to_search_request(), body.filters)


@router.post("/activities/search", response_model=SearchResponse)
async def search_activities(
    body: ActivitySearchRequest,
    service: BookingSearchService = Depends(get_booking_service),
):
    """액티비티 검색 (공급자가 없으면 503)"""
    return await _run_search(service, body.to_search_request(), body.filters)


@router.get("/providers/status")
async def provider_status(service: BookingSearchService = Depends(get_booking_service)):
    """공급자 상태 조회 (헬스체크를 실행하지 않음)"""
    status = service.get_provider_health_status()
    healthy = sum(1 for s in status.values() if s.healthy)

    return {
        "success": True,
        "providers": [s.model_dump(mode="json") for s in status.values()],
        "summary": {
            "total": len(status),
            "healthy": healthy,
            "unhealthy": len(status) - healthy,
        },
        "timestamp": utcnow().isoformat(),
    }


@router.post("/providers/health-check", response_model=MessageResponse)
async def run_health_check(service: BookingSearchService = Depends(get_booking_service)):
    status = await service.trigger_health_check()
    return MessageResponse(
        message="Health check completed for all providers",
        timestamp=utcnow(),
        details={name: s.model_dump(mode="json") for name, s in status.items()},
    )


@router.post("/circuit-breakers/reset", response_model=MessageResponse)
async def reset_circuit_breakers(service: BookingSearchService = Depends(get_booking_service)):
    count = await service.reset_circuit_breakers()
    return MessageResponse(
        message="All circuit breakers have been reset",
        timestamp=utcnow(),
        details={"reset": count},
    )


@router.put("/config", response_model=MessageResponse)
async def update_config(
    body: ConfigUpdateRequest,
    service: BookingSearchService = Depends(get_booking_service),
):
    """런타임 설정 변경 (failover, 재시도 횟수, 캐시 TTL)"""
    if body.enable_failover is not None:
        service.set_failover_enabled(body.enable_failover)
    if body.max_retries is not None:
        service.set_max_retries(body.max_retries)
    if body.cache_ttl_seconds is not None:
        service.set_cache_ttl(body.cache_ttl_seconds)

    return MessageResponse(
        message="Booking service configuration updated",
        timestamp=utcnow(),
        details=service.get_config(),
    )


@router.delete("/cache", response_model=MessageResponse)
async def clear_cache(service: BookingSearchService = Depends(get_booking_service)):
    cleared = await service.clear_cache()
    return MessageResponse(
        message="Booking search cache cleared",
        timestamp=utcnow(),
        details={"cleared": cleared},
    )


@router.get("/{booking_id}/details", response_model=BookingDetailsResponse)
async def booking_details(
    booking_id: str,
    provider: str = Query(..., min_length=1, description="공급자 이름"),
    service: BookingSearchService = Depends(get_booking_service),
):
    details = await service.get_booking_details(booking_id, provider)
    return BookingDetailsResponse(booking_id=booking_id, provider=provider, details=details)


@router.post("/{booking_id}/confirm", response_model=BookingConfirmation)
async def confirm_booking(
    booking_id: str,
    body: BookingConfirmRequest,
    service: BookingSearchService = Depends(get_booking_service),
):
    """직접 예약 (예약 기능이 없는 공급자는 501)"""
    booking_request = BookingRequest(
        option_id=booking_id,
        travellers=body.travellers,
        contact_details=body.contact_details,
        payment_method=body.payment_method,
        special_requests=body.special_requests,
    )
    return await service.book(body.provider, booking_request)
