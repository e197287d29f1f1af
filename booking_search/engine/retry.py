"""Retry Executor - bounded retry with exponential backoff around one provider call.

- 시도 실패마다 Circuit Breaker 실패 카운터 증가
- 첫 성공 즉시 반환 (breaker 성공 신호)
- 타임아웃/취소는 실패로 기록하고 남은 재시도 예산을 포기
- 모든 시도 소진 시 공급자 단위 에러 결과 반환 (예외 전파 없음)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, ClassVar, Optional

from booking_search.core.exceptions import (
    ProviderCallException,
    ProviderTimeoutException,
    ProviderUnavailableException,
)
from booking_search.core.logging import logger
from booking_search.schemas.booking_schema import ProviderSearchResult, SearchRequest

from .circuit_breaker import CircuitBreaker


@dataclass
class RetryPolicy:
    """재시도 정책

    Attributes:
        max_retries: 최초 시도 이후 추가 시도 횟수 (0~5)
        backoff_base_s: 첫 재시도 전 대기 시간 (초)
        backoff_cap_s: 대기 시간 상한 (초)
        attempt_timeout_s: 시도 1회의 절대 타임아웃 (초)
    """

    MAX_RETRIES_LIMIT: ClassVar[int] = 5

    max_retries: int = 2
    backoff_base_s: float = 0.5
    backoff_cap_s: float = 4.0
    attempt_timeout_s: float = 10.0

    def __post_init__(self):
        """설정 검증"""
        self.max_retries = self.clamp_retries(self.max_retries)
        if self.backoff_base_s < 0 or self.backoff_cap_s < 0:
            raise ValueError("backoff settings must be >= 0")
        if self.attempt_timeout_s <= 0:
            raise ValueError("attempt_timeout_s must be positive")

    @classmethod
    def clamp_retries(cls, value: int) -> int:
        return max(0, min(cls.MAX_RETRIES_LIMIT, int(value)))

    def backoff_for(self, attempt: int) -> float:
        """attempt번째 실패 후 대기 시간: base * 2^(attempt-1), 상한 적용"""
        return min(self.backoff_cap_s, self.backoff_base_s * (2 ** (attempt - 1)))


class RetryExecutor:
    """공급자 search 호출 1건을 재시도 정책으로 감싸는 실행자

    Usage:
        executor = RetryExecutor(RetryPolicy(max_retries=2))
        result = await executor.execute(provider, request, breaker)
        if result.is_error:
            ...
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self.policy.max_retries

    def set_max_retries(self, value: int) -> int:
        """재시도 횟수 변경 (0~5로 보정)

        Returns:
            int: 실제 적용된 값
        """
        applied = RetryPolicy.clamp_retries(value)
        if applied != value:
            logger.warning(f"[RETRY] max_retries={value} clamped to {applied}")
        self.policy.max_retries = applied
        return applied

    async def execute(
        self,
        provider,
        request: SearchRequest,
        breaker: Optional[CircuitBreaker] = None,
        gate_retries: bool = True,
    ) -> ProviderSearchResult:
        """공급자 검색 실행 (재시도 포함)

        Args:
            provider: BookingProvider 구현체
            request: 검색 파라미터
            breaker: 해당 공급자의 Circuit Breaker (None이면 신호 생략)
            gate_retries: 재시도 전에 breaker 허용 여부를 다시 확인할지

        Returns:
            ProviderSearchResult: 성공 결과 또는 에러 결과
        """
        # 요청 시작 시점의 값으로 고정 (진행 중 변경 영향 없음)
        attempts = 1 + self.policy.max_retries
        timeout_s = self.policy.attempt_timeout_s
        last_error: Optional[BaseException] = None

        for attempt in range(1, attempts + 1):
            if attempt > 1 and breaker is not None and gate_retries:
                if not await breaker.allow_request():
                    logger.warning(
                        f"[RETRY] {provider.name}: circuit opened during retries, giving up at attempt {attempt}"
                    )
                    return ProviderSearchResult.failed(
                        provider.name, str(ProviderUnavailableException(provider.name))
                    )

            try:
                result = await asyncio.wait_for(provider.search(request), timeout=timeout_s)
                if result.error:
                    # 공급자가 에러 봉투를 돌려준 경우도 실패로 취급
                    raise ProviderCallException(provider.name, result.error)

            except (asyncio.TimeoutError, TimeoutError):
                if breaker is not None:
                    await breaker.record_failure()
                error = ProviderTimeoutException(provider.name, timeout_s)
                logger.warning(f"[RETRY] {provider.name}: attempt {attempt}/{attempts} timed out, aborting retries")
                return ProviderSearchResult.failed(provider.name, str(error))

            except asyncio.CancelledError:
                if breaker is not None:
                    await breaker.record_failure()
                logger.warning(f"[RETRY] {provider.name}: attempt {attempt}/{attempts} cancelled")
                raise

            except Exception as e:
                last_error = e
                if breaker is not None:
                    await breaker.record_failure()

                if attempt < attempts:
                    delay = self.policy.backoff_for(attempt)
                    logger.info(
                        f"[RETRY] {provider.name}: attempt {attempt}/{attempts} failed "
                        f"({type(e).__name__}: {e}), retrying in {delay:.2f}s"
                    )
                    await self._sleep(delay)
                else:
                    logger.warning(
                        f"[RETRY] {provider.name}: attempt {attempt}/{attempts} failed "
                        f"({type(e).__name__}: {e}), retry budget exhausted"
                    )
                continue

            if breaker is not None:
                await breaker.record_success()
            if attempt > 1:
                logger.info(f"[RETRY] {provider.name}: succeeded on attempt {attempt}/{attempts}")
            return result

        reason = str(last_error) if last_error is not None else "unknown error"
        error = ProviderCallException(provider.name, f"{reason} (after {attempts} attempts)")
        return ProviderSearchResult.failed(provider.name, str(error))
