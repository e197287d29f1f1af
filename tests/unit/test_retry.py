"""Retry Executor 유닛 테스트"""
import pytest

from booking_search.engine.circuit_breaker import CircuitBreaker, CircuitState
from booking_search.engine.retry import RetryExecutor, RetryPolicy
from booking_search.schemas.booking_schema import ProviderSearchResult, SearchType


class ErrorEnvelopeProvider:
    """예외 대신 error 봉투를 돌려주는 공급자"""

    name = "Envelope"
    type = SearchType.HOTEL

    def __init__(self):
        self.calls = 0

    async def search(self, request):
        self.calls += 1
        return ProviderSearchResult.failed(self.name, "upstream said no")


class TestRetryPolicy:
    """정책 테스트"""

    @pytest.mark.parametrize("value,expected", [(10, 5), (-1, 0), (3, 3)])
    def test_clamp_retries(self, value, expected):
        assert RetryPolicy.clamp_retries(value) == expected
        assert RetryPolicy(max_retries=value).max_retries == expected

    def test_exponential_backoff_with_cap(self):
        policy = RetryPolicy(backoff_base_s=0.5, backoff_cap_s=3.0)

        assert [policy.backoff_for(n) for n in (1, 2, 3, 4)] == [0.5, 1.0, 2.0, 3.0]

    def test_invalid_timeout(self):
        with pytest.raises(ValueError):
            RetryPolicy(attempt_timeout_s=0)


@pytest.mark.asyncio
class TestRetryExecutor:
    """재시도 실행 테스트"""

    async def test_first_success_no_retry(self, fake_provider, hotel_options, hotel_request, sleep_calls):
        provider = fake_provider("HotelsA", options=hotel_options)
        executor = RetryExecutor(RetryPolicy(max_retries=2), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request)

        assert result.error is None
        assert result.total_results == 4
        assert provider.calls == 1
        assert sleep_calls.calls == []

    async def test_two_retries_means_three_attempts(self, fake_provider, hotel_request, sleep_calls):
        """maxRetries=2 → 최대 3회 호출"""
        provider = fake_provider("Flaky", always_fail=True)
        executor = RetryExecutor(RetryPolicy(max_retries=2, backoff_base_s=0.5), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request)

        assert provider.calls == 3
        assert result.is_error
        assert result.results == []
        assert "after 3 attempts" in result.error
        assert sleep_calls.calls == [0.5, 1.0]

    async def test_success_after_failures(self, fake_provider, hotel_options, hotel_request, sleep_calls):
        provider = fake_provider("Flaky", options=hotel_options, fail_times=2)
        executor = RetryExecutor(RetryPolicy(max_retries=2), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request)

        assert provider.calls == 3
        assert result.error is None
        assert result.total_results == 4

    async def test_zero_retries(self, fake_provider, hotel_request, sleep_calls):
        provider = fake_provider("Flaky", always_fail=True)
        executor = RetryExecutor(RetryPolicy(max_retries=0), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request)

        assert provider.calls == 1
        assert result.is_error

    async def test_timeout_aborts_remaining_retries(self, fake_provider, hotel_request, sleep_calls, fake_clock):
        """타임아웃은 남은 재시도를 포기"""
        provider = fake_provider("Slow", delay=1.0)
        breaker = CircuitBreaker("hotel:Slow", fail_threshold=5, clock=fake_clock)
        executor = RetryExecutor(
            RetryPolicy(max_retries=3, attempt_timeout_s=0.05), sleep=sleep_calls
        )

        result = await executor.execute(provider, hotel_request, breaker)

        assert provider.calls == 1
        assert "timed out" in result.error
        assert breaker.failure_count == 1
        assert sleep_calls.calls == []

    async def test_error_envelope_counts_as_failure(self, hotel_request, sleep_calls):
        provider = ErrorEnvelopeProvider()
        executor = RetryExecutor(RetryPolicy(max_retries=1), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request)

        assert provider.calls == 2
        assert "upstream said no" in result.error

    async def test_breaker_signals(self, fake_provider, hotel_options, hotel_request, sleep_calls, fake_clock):
        provider = fake_provider("Flaky", options=hotel_options, fail_times=1)
        breaker = CircuitBreaker("hotel:Flaky", fail_threshold=5, clock=fake_clock)
        executor = RetryExecutor(RetryPolicy(max_retries=2), sleep=sleep_calls)

        await executor.execute(provider, hotel_request, breaker)

        stats = breaker.stats()
        assert stats.success_count == 1
        assert stats.failure_count == 0

    async def test_retries_stop_when_circuit_opens(self, fake_provider, hotel_request, sleep_calls, fake_clock):
        provider = fake_provider("Down", always_fail=True)
        breaker = CircuitBreaker("hotel:Down", fail_threshold=2, clock=fake_clock)
        executor = RetryExecutor(RetryPolicy(max_retries=5), sleep=sleep_calls)

        result = await executor.execute(provider, hotel_request, breaker)

        assert provider.calls == 2
        assert breaker.state == CircuitState.OPEN
        assert "circuit open" in result.error

    async def test_ungated_retries_ignore_circuit(self, fake_provider, hotel_request, sleep_calls, fake_clock):
        provider = fake_provider("Down", always_fail=True)
        breaker = CircuitBreaker("hotel:Down", fail_threshold=2, clock=fake_clock)
        executor = RetryExecutor(RetryPolicy(max_retries=5), sleep=sleep_calls)

        await executor.execute(provider, hotel_request, breaker, gate_retries=False)

        assert provider.calls == 6

    async def test_set_max_retries_clamps(self, sleep_calls):
        executor = RetryExecutor(sleep=sleep_calls)

        assert executor.set_max_retries(10) == 5
        assert executor.max_retries == 5
        assert executor.set_max_retries(-1) == 0
        assert executor.max_retries == 0
