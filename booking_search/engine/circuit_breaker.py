"""Circuit Breaker - per-provider failure tracking (CLOSED / OPEN / HALF_OPEN).

연속 실패가 임계값에 도달한 공급자를 쿨다운 동안 호출하지 않도록 막고,
쿨다운 후에는 프로브 1건만 통과시켜 복구 여부를 확인합니다.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from booking_search.core.logging import logger


class CircuitState(str, Enum):
    """회로 상태"""

    CLOSED = "closed"  # 정상 - 호출 통과
    OPEN = "open"  # 차단 - 즉시 거절
    HALF_OPEN = "half_open"  # 복구 확인 - 프로브 1건만 허용


@dataclass
class CircuitBreakerStats:
    """회로 상태 스냅샷 (조회 전용)"""

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    total_requests: int
    failure_threshold: int
    reset_timeout_s: float
    last_failure_at: Optional[float] = None
    last_success_at: Optional[float] = None
    last_state_change_at: Optional[float] = None
    next_attempt_at: Optional[float] = None

    def to_dict(self) -> dict:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class CircuitBreaker:
    """공급자 단위 Circuit Breaker

    - CLOSED: 실패마다 카운터 증가, 임계값 도달 시 OPEN
    - OPEN: reset_timeout_s 동안 모든 호출 거절
    - HALF_OPEN: 쿨다운 후 첫 호출만 프로브로 통과
        - 성공 → CLOSED (카운터 초기화)
        - 실패 → OPEN (쿨다운 재시작)

    상태 변경은 인스턴스별 asyncio.Lock으로 직렬화합니다.
    """

    def __init__(
        self,
        name: str,
        fail_threshold: int = 5,
        reset_timeout_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """초기화.

        Args:
            name: 회로 이름 (로깅용, 보통 "type:provider")
            fail_threshold: 회로 개방 임계값 (연속 실패 횟수)
            reset_timeout_s: OPEN 유지 시간 (초)
            clock: 단조 시계 (테스트에서 주입)
        """
        if fail_threshold <= 0:
            raise ValueError("fail_threshold must be positive")
        if reset_timeout_s < 0:
            raise ValueError("reset_timeout_s must be >= 0")

        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout_s = reset_timeout_s
        self._clock = clock
        self._lock = asyncio.Lock()

        self._state = CircuitState.CLOSED
        self._fail_count = 0
        self._success_count = 0
        self._total_requests = 0
        self._probe_in_flight = False
        self._opened_at: Optional[float] = None
        self._last_failure_at: Optional[float] = None
        self._last_success_at: Optional[float] = None
        self._last_state_change_at: Optional[float] = clock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._fail_count

    def is_open(self) -> bool:
        """OPEN 상태인가? (부수효과 없음)"""
        return self._state == CircuitState.OPEN

    async def allow_request(self) -> bool:
        """호출 허용 여부 판단

        OPEN에서 쿨다운이 지났으면 HALF_OPEN으로 전환하고 이번 호출을 프로브로 허용합니다.

        Returns:
            bool: 공급자를 호출해도 되는지 여부
        """
        async with self._lock:
            self._total_requests += 1

            if self._state == CircuitState.OPEN:
                if not self._cooldown_elapsed():
                    return False
                self._transition(CircuitState.HALF_OPEN)
                self._probe_in_flight = True
                logger.info(f"[CIRCUIT_BREAKER] {self.name} HALF_OPEN (probe allowed)")
                return True

            if self._state == CircuitState.HALF_OPEN:
                # 프로브 진행 중에는 다른 호출 거절
                if self._probe_in_flight:
                    return False
                self._probe_in_flight = True
                return True

            return True

    async def record_success(self) -> None:
        """성공 기록 → HALF_OPEN이면 회로 닫기"""
        async with self._lock:
            self._success_count += 1
            self._last_success_at = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._fail_count = 0
                self._probe_in_flight = False
                self._transition(CircuitState.CLOSED)
                logger.info(f"[CIRCUIT_BREAKER] {self.name} CLOSED (probe succeeded)")
            elif self._state == CircuitState.CLOSED:
                self._fail_count = 0

    async def record_failure(self) -> None:
        """실패 기록 → 임계값 도달 또는 프로브 실패 시 회로 개방"""
        async with self._lock:
            self._fail_count += 1
            self._last_failure_at = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False
                self._open()
                logger.warning(
                    f"[CIRCUIT_BREAKER] {self.name} OPEN again (probe failed). "
                    f"Blocked for {self.reset_timeout_s}s"
                )
            elif self._state == CircuitState.CLOSED and self._fail_count >= self.fail_threshold:
                self._open()
                logger.warning(
                    f"[CIRCUIT_BREAKER] {self.name} OPEN (fail_count={self._fail_count} >= {self.fail_threshold}). "
                    f"Blocked for {self.reset_timeout_s}s"
                )

    async def reset(self) -> None:
        """수동 초기화 → CLOSED, 카운터 0"""
        async with self._lock:
            self._fail_count = 0
            self._success_count = 0
            self._probe_in_flight = False
            self._opened_at = None
            self._transition(CircuitState.CLOSED)
        logger.info(f"[CIRCUIT_BREAKER] {self.name} manually reset")

    async def force_open(self) -> None:
        """수동 개방 (운영자 차단)"""
        async with self._lock:
            self._probe_in_flight = False
            self._open()
        logger.warning(f"[CIRCUIT_BREAKER] {self.name} manually opened")

    def get_remaining_open_time(self) -> float:
        """회로 개방 남은 시간 (초)"""
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return 0.0
        remaining = self._opened_at + self.reset_timeout_s - self._clock()
        return max(0.0, remaining)

    def stats(self) -> CircuitBreakerStats:
        """현재 상태 스냅샷 (상태 전환 없음)"""
        next_attempt_at = None
        if self._state == CircuitState.OPEN and self._opened_at is not None:
            next_attempt_at = self._opened_at + self.reset_timeout_s

        return CircuitBreakerStats(
            name=self.name,
            state=self._state,
            failure_count=self._fail_count,
            success_count=self._success_count,
            total_requests=self._total_requests,
            failure_threshold=self.fail_threshold,
            reset_timeout_s=self.reset_timeout_s,
            last_failure_at=self._last_failure_at,
            last_success_at=self._last_success_at,
            last_state_change_at=self._last_state_change_at,
            next_attempt_at=next_attempt_at,
        )

    def _cooldown_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return self._clock() - self._opened_at >= self.reset_timeout_s

    def _open(self) -> None:
        self._opened_at = self._clock()
        self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if self._state != new_state:
            self._state = new_state
            self._last_state_change_at = self._clock()

    def __repr__(self) -> str:
        return (
            f"CircuitBreaker({self.name}, {self._state.value.upper()}, "
            f"fail_count={self._fail_count}/{self.fail_threshold}, "
            f"open_time={self.get_remaining_open_time():.1f}s)"
        )


class CircuitBreakerRegistry:
    """공급자 식별자(name+type) → CircuitBreaker

    첫 호출 시 lazy 생성, 삭제하지 않음 (reset만 가능).
    내부 dict는 노출하지 않습니다.
    """

    def __init__(
        self,
        fail_threshold: int = 5,
        reset_timeout_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.fail_threshold = fail_threshold
        self.reset_timeout_s = reset_timeout_s
        self._clock = clock
        self._breakers: Dict[str, CircuitBreaker] = {}

    @staticmethod
    def key_for(name: str, provider_type: str) -> str:
        return f"{provider_type}:{name}"

    def get(self, name: str, provider_type: str) -> CircuitBreaker:
        """회로 조회 (없으면 생성)"""
        key = self.key_for(name, provider_type)
        breaker = self._breakers.get(key)
        if breaker is None:
            breaker = CircuitBreaker(
                name=key,
                fail_threshold=self.fail_threshold,
                reset_timeout_s=self.reset_timeout_s,
                clock=self._clock,
            )
            # await 없이 check-then-set 이므로 이벤트 루프 안에서 원자적
            breaker = self._breakers.setdefault(key, breaker)
            logger.debug(f"[CIRCUIT_BREAKER] created {key}")
        return breaker

    def peek(self, name: str, provider_type: str) -> Optional[CircuitBreaker]:
        """회로 조회 (생성하지 않음)"""
        return self._breakers.get(self.key_for(name, provider_type))

    def all_stats(self) -> Dict[str, CircuitBreakerStats]:
        return {key: breaker.stats() for key, breaker in list(self._breakers.items())}

    def healthy(self) -> List[str]:
        return [key for key, breaker in list(self._breakers.items()) if not breaker.is_open()]

    def unhealthy(self) -> List[str]:
        return [key for key, breaker in list(self._breakers.items()) if breaker.is_open()]

    async def reset_all(self) -> int:
        """모든 회로 초기화

        Returns:
            int: 초기화한 회로 수
        """
        breakers = list(self._breakers.values())
        for breaker in breakers:
            await breaker.reset()
        logger.info(f"[CIRCUIT_BREAKER] all circuit breakers reset ({len(breakers)})")
        return len(breakers)

    def __len__(self) -> int:
        return len(self._breakers)
