"""Search Orchestrator - fan-out search across providers with failure containment.

Pipeline:
1. 요청 정규화 + 타입별 필수 필드 검증 (실패 시 합성 에러 결과, 공급자 호출 없음)
2. 타입이 맞는 공급자 선택 + 허용 목록 적용 (교집합이 비면 허용 목록 무시)
3. 공급자별 동시 실행: Circuit Breaker 확인 → Retry Executor
4. 모든 분기 완료 대기 (한 공급자의 실패가 다른 호출을 중단시키지 않음)
5. Result Aggregator로 병합/필터/정렬

공급자 단위 실패는 항상 결과 봉투 안의 error로 남고, 전체 실패는
"해당 타입 공급자 없음" 한 가지뿐입니다.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from booking_search.core.exceptions import (
    MissingFieldException,
    NoProvidersAvailableException,
    ProviderUnavailableException,
)
from booking_search.core.logging import logger, sanitize_for_log
from booking_search.schemas.booking_schema import (
    AggregatedSearchResult,
    ProviderSearchResult,
    SearchFilters,
    SearchRequest,
    SearchType,
)

from .aggregator import ResultAggregator
from .circuit_breaker import CircuitBreakerRegistry
from .provider_registry import ProviderRegistry
from .retry import RetryExecutor


VALIDATION_PROVIDER = "request_validation"


class SearchOrchestrator:
    """다중 공급자 검색 오케스트레이터

    Usage:
        orchestrator = SearchOrchestrator(registry, breakers, RetryExecutor())
        result = await orchestrator.search(request, filters)
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        breakers: CircuitBreakerRegistry,
        retry_executor: RetryExecutor,
        aggregator: Optional[ResultAggregator] = None,
        failover_enabled: bool = True,
    ):
        """
        Args:
            registry: 공급자 레지스트리
            breakers: 공급자별 Circuit Breaker 레지스트리
            retry_executor: 재시도 실행자
            aggregator: 결과 집계기 (기본값: ResultAggregator())
            failover_enabled: True면 OPEN 상태 공급자를 호출하지 않고 건너뜀
        """
        if registry is None:
            raise ValueError("registry must not be None")
        if breakers is None:
            raise ValueError("breakers must not be None")
        if retry_executor is None:
            raise ValueError("retry_executor must not be None")

        self.registry = registry
        self.breakers = breakers
        self.retry_executor = retry_executor
        self.aggregator = aggregator or ResultAggregator()
        self.failover_enabled = failover_enabled

    async def search(
        self, request: SearchRequest, filters: Optional[SearchFilters] = None
    ) -> AggregatedSearchResult:
        """통합 검색 실행

        Args:
            request: 검색 파라미터
            filters: 사후 필터/정렬

        Returns:
            AggregatedSearchResult: 공급자 일부가 실패해도 항상 반환

        Raises:
            NoProvidersAvailableException: 요청 타입을 처리할 공급자가 없음
        """
        request = request.normalized()
        search_type = SearchType(request.type)

        missing = request.missing_fields()
        if missing:
            error = MissingFieldException(missing[0], search_type.value)
            logger.warning(f"[ORCHESTRATOR] rejected {search_type.value} search: {error.message}")
            return self.aggregator.aggregate(
                [ProviderSearchResult.failed(VALIDATION_PROVIDER, str(error))],
                filters,
                providers_consulted=[],
            )

        providers = self.select_providers(search_type, filters)
        if not providers:
            raise NoProvidersAvailableException(search_type.value)

        names = [p.name for p in providers]
        logger.info(
            f"[ORCHESTRATOR] {search_type.value} search to={sanitize_for_log(request.destination or '')} "
            f"providers={names}"
        )

        # 공급자 분기는 내부에서 예외를 결과로 변환하므로 gather가 중단되지 않음
        provider_results = await asyncio.gather(
            *(self._search_provider(provider, request) for provider in providers)
        )

        failed = [r.provider for r in provider_results if r.error]
        if failed:
            logger.warning(f"[ORCHESTRATOR] {len(failed)}/{len(providers)} providers failed: {failed}")

        return self.aggregator.aggregate(provider_results, filters, providers_consulted=names)

    def select_providers(self, search_type: SearchType, filters: Optional[SearchFilters] = None) -> List:
        """타입이 맞는 공급자 (허용 목록 교집합이 비면 허용 목록 무시)"""
        candidates = self.registry.list(search_type)

        if filters is not None and filters.providers:
            allowed = set(filters.providers)
            restricted = [p for p in candidates if p.name in allowed]
            if restricted:
                return restricted
            logger.info(
                f"[ORCHESTRATOR] provider allow-list {filters.providers} matched nothing, ignoring it"
            )
        return candidates

    async def _search_provider(self, provider, request: SearchRequest) -> ProviderSearchResult:
        """공급자 1곳 검색 (Circuit Breaker 확인 + 재시도)"""
        breaker = self.breakers.get(provider.name, SearchType(provider.type).value)

        try:
            allowed = await breaker.allow_request()
            if not allowed and self.failover_enabled:
                logger.info(f"[ORCHESTRATOR] skipping {provider.name}: circuit {breaker.state.value}")
                return ProviderSearchResult.failed(
                    provider.name, str(ProviderUnavailableException(provider.name))
                )

            return await self.retry_executor.execute(
                provider, request, breaker, gate_retries=self.failover_enabled
            )

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"[ORCHESTRATOR] unexpected error from {provider.name}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            return ProviderSearchResult.failed(provider.name, f"{type(e).__name__}: {e}")
