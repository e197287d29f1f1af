"""예약 검색 서비스 - 검색 파이프라인과 운영 기능의 단일 진입점"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from booking_search.core.config import Settings, settings as default_settings
from booking_search.core.exceptions import BookingNotSupportedException, ValidationException
from booking_search.core.logging import logger
from booking_search.engine import (
    CircuitBreakerRegistry,
    CircuitState,
    ProviderRegistry,
    ResultAggregator,
    RetryExecutor,
    RetryPolicy,
    SearchCache,
    SearchOrchestrator,
    create_search_cache,
)
from booking_search.providers.base import SupportsBooking
from booking_search.schemas.booking_schema import (
    AggregatedSearchResult,
    BookingConfirmation,
    BookingDetails,
    BookingRequest,
    ProviderHealth,
    SearchFilters,
    SearchRequest,
    SearchType,
    utcnow,
)


PROBE_DESTINATION = "TEST"


@dataclass
class ProbeResult:
    """마지막 헬스체크 결과"""
    ok: bool
    checked_at: datetime
    error: Optional[str] = None


class BookingSearchService:
    """
    예약 검색 서비스 - 명시적으로 생성하고 수명주기를 관리하는 서비스 객체

    - 검색: SearchCache → SearchOrchestrator → ResultAggregator
    - 상세/예약: 공급자 레지스트리 조회 후 위임
    - 운영: 헬스체크, 회로 초기화, failover/재시도 변경, 캐시 비우기
    - 백그라운드: 주기적 헬스체크, 캐시 만료 정리 (start/shutdown)
    """

    def __init__(
        self,
        providers: Iterable = (),
        config: Optional[Settings] = None,
        cache: Optional[SearchCache] = None,
        breakers: Optional[CircuitBreakerRegistry] = None,
        retry_executor: Optional[RetryExecutor] = None,
    ):
        self.config = config or default_settings

        self.registry = ProviderRegistry()
        self.breakers = breakers if breakers is not None else CircuitBreakerRegistry(
            fail_threshold=self.config.breaker_failure_threshold,
            reset_timeout_s=self.config.breaker_reset_timeout_s,
        )
        self.retry_executor = retry_executor or RetryExecutor(
            RetryPolicy(
                max_retries=self.config.retry_max_retries,
                backoff_base_s=self.config.retry_backoff_base_s,
                backoff_cap_s=self.config.retry_backoff_cap_s,
                attempt_timeout_s=self.config.provider_request_timeout_s,
            )
        )
        self.cache = cache if cache is not None else create_search_cache(self.config)
        self.orchestrator = SearchOrchestrator(
            registry=self.registry,
            breakers=self.breakers,
            retry_executor=self.retry_executor,
            aggregator=ResultAggregator(),
            failover_enabled=self.config.failover_enabled,
        )

        self._last_probe: Dict[str, ProbeResult] = {}
        self._health_task: Optional[asyncio.Task] = None
        self._sweep_task: Optional[asyncio.Task] = None

        for provider in providers:
            self.register_provider(provider)

    # ------------------------------------------------------------------
    # 공급자
    # ------------------------------------------------------------------

    def register_provider(self, provider) -> None:
        self.registry.register(provider)
        self._last_probe.pop(provider.name, None)

    def get_providers(self, search_type: Optional[SearchType] = None) -> List:
        return self.registry.list(search_type)

    # ------------------------------------------------------------------
    # 검색 / 상세 / 예약
    # ------------------------------------------------------------------

    async def search(
        self, request: SearchRequest, filters: Optional[SearchFilters] = None
    ) -> AggregatedSearchResult:
        """
        통합 검색 (Cache-First)

        Args:
            request: 검색 파라미터
            filters: 사후 필터/정렬

        Returns:
            AggregatedSearchResult (캐시 hit이면 같은 search_id)

        Raises:
            NoProvidersAvailableException: 요청 타입 공급자가 없음
        """
        return await self.cache.get_or_compute(
            request, filters, lambda: self.orchestrator.search(request, filters)
        )

    async def get_booking_details(self, booking_id: str, provider_name: str) -> BookingDetails:
        """
        옵션 상세 조회

        Raises:
            ProviderNotFoundException: 등록되지 않은 공급자
            BookingNotFoundException: 공급자가 모르는 ID
        """
        provider = self.registry.get(provider_name)
        return await provider.get_details(booking_id)

    async def book(self, provider_name: str, request: BookingRequest) -> BookingConfirmation:
        """
        직접 예약 (SupportsBooking 공급자만)

        Raises:
            ProviderNotFoundException: 등록되지 않은 공급자
            BookingNotSupportedException: 예약 기능이 없는 공급자
        """
        provider = self.registry.get(provider_name)
        if not isinstance(provider, SupportsBooking):
            raise BookingNotSupportedException(provider_name)

        logger.info(f"[PROVIDER] booking option {request.option_id} via {provider_name}")
        return await provider.book(request)

    # ------------------------------------------------------------------
    # 헬스체크
    # ------------------------------------------------------------------

    def get_provider_health_status(self) -> Dict[str, ProviderHealth]:
        """공급자별 상태 (부수효과 없음)

        healthy = 회로가 OPEN이 아니고 마지막 헬스체크가 실패하지 않았음
        """
        status: Dict[str, ProviderHealth] = {}
        for provider in self.registry.list():
            provider_type = SearchType(provider.type)
            breaker = self.breakers.peek(provider.name, provider_type.value)
            stats = breaker.stats() if breaker is not None else None
            state = stats.state if stats is not None else CircuitState.CLOSED
            probe = self._last_probe.get(provider.name)

            status[provider.name] = ProviderHealth(
                name=provider.name,
                type=provider_type,
                healthy=state != CircuitState.OPEN and (probe is None or probe.ok),
                breaker_state=state.value,
                failure_count=stats.failure_count if stats is not None else 0,
                last_checked=probe.checked_at if probe is not None else None,
                last_error=probe.error if probe is not None else None,
                breaker=stats.to_dict() if stats is not None else None,
            )
        return status

    async def trigger_health_check(self) -> Dict[str, ProviderHealth]:
        """모든 공급자에 최소 검색을 동시에 보내 상태 갱신 (예외를 올리지 않음)"""
        providers = self.registry.list()
        if providers:
            await asyncio.gather(*(self._probe(provider) for provider in providers))

        status = self.get_provider_health_status()
        healthy = sum(1 for s in status.values() if s.healthy)
        logger.info(f"[HEALTH] health check completed: {healthy}/{len(status)} healthy")
        return status

    async def _probe(self, provider) -> None:
        provider_type = SearchType(provider.type)
        breaker = self.breakers.get(provider.name, provider_type.value)
        timeout_s = self.config.provider_health_timeout_s

        # 쿨다운이 지난 OPEN 회로는 이 헬스체크가 HALF_OPEN 프로브가 됨
        if not await breaker.allow_request():
            logger.info(f"[HEALTH] {provider.name} skipped (circuit {breaker.state.value})")
            return

        try:
            result = await asyncio.wait_for(
                provider.search(self._probe_request(provider_type)), timeout=timeout_s
            )
            if result.error:
                raise RuntimeError(result.error)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            reason = "timeout" if isinstance(e, asyncio.TimeoutError) else f"{type(e).__name__}: {e}"
            logger.warning(f"[HEALTH] {provider.name} health check failed: {reason}")
            self._last_probe[provider.name] = ProbeResult(ok=False, checked_at=utcnow(), error=reason)
            await breaker.record_failure()
            return

        self._last_probe[provider.name] = ProbeResult(ok=True, checked_at=utcnow())
        await breaker.record_success()

    @staticmethod
    def _probe_request(provider_type: SearchType) -> SearchRequest:
        today = utcnow()
        tomorrow = today + timedelta(days=1)
        return SearchRequest(
            type=provider_type,
            origin=PROBE_DESTINATION,
            destination=PROBE_DESTINATION,
            departure_date=today,
            check_in=today,
            check_out=tomorrow,
        )

    # ------------------------------------------------------------------
    # 운영 설정
    # ------------------------------------------------------------------

    async def reset_circuit_breakers(self) -> int:
        count = await self.breakers.reset_all()
        self._last_probe.clear()
        return count

    def set_failover_enabled(self, enabled: bool) -> None:
        self.orchestrator.failover_enabled = bool(enabled)
        logger.info(f"[ORCHESTRATOR] failover {'enabled' if enabled else 'disabled'}")

    def set_max_retries(self, max_retries: int) -> int:
        """재시도 횟수 변경 (0~5로 보정, 적용값 반환)"""
        applied = self.retry_executor.set_max_retries(max_retries)
        logger.info(f"[RETRY] max_retries set to {applied}")
        return applied

    def set_cache_ttl(self, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            raise ValidationException("cache_ttl_seconds", "must be positive")
        self.cache.ttl_seconds = ttl_seconds
        logger.info(f"[CACHE] ttl set to {ttl_seconds}s")

    async def clear_cache(self) -> int:
        return await self.cache.clear()

    def get_config(self) -> Dict[str, Any]:
        return {
            "failover_enabled": self.orchestrator.failover_enabled,
            "max_retries": self.retry_executor.max_retries,
            "cache_ttl_seconds": self.cache.ttl_seconds,
            "breaker_failure_threshold": self.breakers.fail_threshold,
            "breaker_reset_timeout_s": self.breakers.reset_timeout_s,
            "health_check_interval_s": self.config.health_check_interval_s,
            "providers": self.registry.names(),
            "cache": self.cache.stats(),
        }

    # ------------------------------------------------------------------
    # 수명주기
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """백그라운드 작업 시작 (이미 실행 중이면 무시)"""
        interval = self.config.health_check_interval_s
        if interval > 0 and self._health_task is None:
            self._health_task = asyncio.create_task(self._health_loop(interval), name="booking-health-check")
            logger.info(f"[HEALTH] periodic health check every {interval}s")

        sweep_interval = self.config.cache_sweep_interval_s
        if sweep_interval > 0 and self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop(sweep_interval), name="booking-cache-sweep")

    async def shutdown(self) -> None:
        """백그라운드 작업 취소 + 공급자 HTTP 클라이언트/캐시 연결 종료"""
        for task in (self._health_task, self._sweep_task):
            if task is None:
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._health_task = None
        self._sweep_task = None

        for provider in self.registry.list():
            aclose = getattr(provider, "aclose", None)
            if aclose is None:
                continue
            try:
                await aclose()
            except Exception as e:
                logger.warning(f"[PROVIDER] failed to close {provider.name}: {e}")

        await self.cache.close()
        logger.info("Booking search service stopped")

    async def _health_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.trigger_health_check()
            except Exception as e:
                logger.error(f"[HEALTH] periodic health check failed: {e}", exc_info=True)

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            await self.cache.sweep()
