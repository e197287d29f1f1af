"""BookingSearchService 유닛 테스트 (캐시 연동, 운영 기능, 헬스체크, 수명주기)"""
from unittest.mock import AsyncMock

import pytest

from booking_search.core.config import Settings
from booking_search.core.exceptions import (
    BookingNotFoundException,
    BookingNotSupportedException,
    NoProvidersAvailableException,
    ProviderNotFoundException,
    ValidationException,
)
from booking_search.engine import CircuitBreakerRegistry, RetryExecutor, RetryPolicy
from booking_search.schemas.booking_schema import (
    BookingConfirmation,
    BookingDetails,
    BookingRequest,
    BookingStatus,
    SearchType,
)
from booking_search.services import BookingSearchService


async def noop_sleep(_seconds):
    return None


def make_config(**overrides):
    values = {
        "retry_max_retries": 0,
        "breaker_failure_threshold": 2,
        "provider_health_timeout_s": 0.5,
        "health_check_interval_s": 0,
        "cache_sweep_interval_s": 0,
        "cache_backend": "memory",
    }
    values.update(overrides)
    return Settings(**values)


def make_service(providers, breakers=None, **overrides):
    config = make_config(**overrides)
    executor = RetryExecutor(
        RetryPolicy(max_retries=config.retry_max_retries, attempt_timeout_s=1.0), sleep=noop_sleep
    )
    return BookingSearchService(providers, config=config, breakers=breakers, retry_executor=executor)


def booking_request(option_id="hotel-a"):
    return BookingRequest.model_validate(
        {
            "option_id": option_id,
            "travellers": [{"title": "Ms", "first_name": "Ana", "last_name": "Silva"}],
            "contact_details": {"email": "ana@example.com", "phone": "+351 900 000 000"},
            "payment_method": {"type": "credit_card", "card_last4": "4242"},
        }
    )


@pytest.mark.asyncio
class TestServiceSearch:
    """검색 + 캐시 테스트"""

    async def test_repeated_search_served_from_cache(self, fake_provider, hotel_options, hotel_request):
        provider = fake_provider("HotelsA", options=hotel_options)
        service = make_service([provider])

        first = await service.search(hotel_request)
        second = await service.search(hotel_request)

        assert provider.calls == 1
        assert second.search_id == first.search_id

    async def test_clear_cache_forces_new_search(self, fake_provider, hotel_options, hotel_request):
        provider = fake_provider("HotelsA", options=hotel_options)
        service = make_service([provider])
        first = await service.search(hotel_request)

        assert await service.clear_cache() == 1
        second = await service.search(hotel_request)

        assert provider.calls == 2
        assert second.search_id != first.search_id

    async def test_no_providers_propagates(self, fake_provider, activity_request):
        service = make_service([fake_provider("HotelsA")])

        with pytest.raises(NoProvidersAvailableException):
            await service.search(activity_request)

    async def test_get_providers_by_type(self, fake_provider):
        service = make_service(
            [fake_provider("HotelsA"), fake_provider("FlightsA", type=SearchType.FLIGHT)]
        )

        assert [p.name for p in service.get_providers(SearchType.FLIGHT)] == ["FlightsA"]
        assert len(service.get_providers()) == 2


@pytest.mark.asyncio
class TestServiceDetailsAndBooking:
    """상세 조회 / 예약 테스트"""

    async def test_get_booking_details(self, fake_provider, hotel_options):
        service = make_service([fake_provider("HotelsA", options=hotel_options)])

        details = await service.get_booking_details("hotel-b", "HotelsA")

        assert details.id == "hotel-b"
        assert details.provider == "HotelsA"
        assert details.terms == "Test terms"

    async def test_details_unknown_id(self, fake_provider, hotel_options):
        service = make_service([fake_provider("HotelsA", options=hotel_options)])

        with pytest.raises(BookingNotFoundException):
            await service.get_booking_details("missing", "HotelsA")

    async def test_details_unknown_provider(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        with pytest.raises(ProviderNotFoundException):
            await service.get_booking_details("hotel-a", "Nope")

    async def test_book_not_supported(self, fake_provider, hotel_options):
        service = make_service([fake_provider("HotelsA", options=hotel_options)])

        with pytest.raises(BookingNotSupportedException):
            await service.book("HotelsA", booking_request())

    async def test_book_delegates_to_capable_provider(self, fake_provider, hotel_options):
        provider = fake_provider("HotelsA", options=hotel_options)

        async def book(request):
            details = await provider.get_details(request.option_id)
            return BookingConfirmation(
                booking_id="bk-1",
                confirmation_number="CONF123",
                status=BookingStatus.CONFIRMED,
                total_amount=details.price.amount,
                currency=details.price.currency,
                booking_details=details,
            )

        provider.book = book
        service = make_service([provider])

        confirmation = await service.book("HotelsA", booking_request("hotel-a"))

        assert confirmation.status == BookingStatus.CONFIRMED
        assert confirmation.total_amount == 450
        assert isinstance(confirmation.booking_details, BookingDetails)


@pytest.mark.asyncio
class TestServiceHealth:
    """헬스체크 테스트"""

    async def test_status_is_side_effect_free(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        status = service.get_provider_health_status()

        assert status["HotelsA"].healthy is True
        assert status["HotelsA"].breaker_state == "closed"
        assert status["HotelsA"].last_checked is None
        assert len(service.breakers) == 0

    async def test_health_check_marks_failing_provider(self, fake_provider, hotel_options):
        healthy = fake_provider("HotelsA", options=hotel_options)
        broken = fake_provider("Broken", always_fail=True)
        service = make_service([healthy, broken])

        status = await service.trigger_health_check()

        assert status["HotelsA"].healthy is True
        assert status["HotelsA"].last_checked is not None
        assert status["Broken"].healthy is False
        assert "upstream 503" in status["Broken"].last_error
        assert status["Broken"].failure_count == 1
        assert healthy.requests[0].destination == "TEST"

    async def test_health_check_timeout(self, fake_provider):
        slow = fake_provider("Slow", delay=1.0)
        service = make_service([slow], provider_health_timeout_s=0.05)

        status = await service.trigger_health_check()

        assert status["Slow"].healthy is False
        assert status["Slow"].last_error == "timeout"

    async def test_repeated_failures_open_circuit(self, fake_provider):
        broken = fake_provider("Broken", always_fail=True)
        service = make_service([broken], breaker_failure_threshold=2)

        await service.trigger_health_check()
        status = await service.trigger_health_check()

        assert status["Broken"].breaker_state == "open"

    async def test_health_check_recovers_after_cooldown(self, fake_provider, hotel_options, fake_clock):
        """쿨다운 전에는 건너뛰고, 쿨다운 후 성공하면 회로가 닫힘"""
        recovering = fake_provider("Recovering", options=hotel_options, fail_times=2)
        breakers = CircuitBreakerRegistry(fail_threshold=2, reset_timeout_s=60.0, clock=fake_clock)
        service = make_service([recovering], breakers=breakers)
        await service.trigger_health_check()
        await service.trigger_health_check()

        status = await service.trigger_health_check()
        assert recovering.calls == 2
        assert status["Recovering"].breaker_state == "open"

        fake_clock.advance(60)
        status = await service.trigger_health_check()

        assert recovering.calls == 3
        assert status["Recovering"].breaker_state == "closed"
        assert status["Recovering"].healthy is True

    async def test_reset_circuit_breakers(self, fake_provider):
        broken = fake_provider("Broken", always_fail=True)
        service = make_service([broken])
        await service.trigger_health_check()

        assert await service.reset_circuit_breakers() == 1

        status = service.get_provider_health_status()
        assert status["Broken"].healthy is True
        assert status["Broken"].failure_count == 0


@pytest.mark.asyncio
class TestServiceConfig:
    """운영 설정 테스트"""

    async def test_max_retries_clamped(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        assert service.set_max_retries(10) == 5
        assert service.get_config()["max_retries"] == 5
        assert service.set_max_retries(-1) == 0
        assert service.get_config()["max_retries"] == 0

    async def test_failover_toggle(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        service.set_failover_enabled(False)

        assert service.orchestrator.failover_enabled is False
        assert service.get_config()["failover_enabled"] is False

    async def test_cache_ttl(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        service.set_cache_ttl(60)
        assert service.get_config()["cache_ttl_seconds"] == 60

        with pytest.raises(ValidationException):
            service.set_cache_ttl(0)

    async def test_config_lists_providers(self, fake_provider):
        service = make_service([fake_provider("HotelsA"), fake_provider("HotelsB")])

        config = service.get_config()

        assert config["providers"] == ["HotelsA", "HotelsB"]
        assert config["cache"]["backend"] == "MemoryCacheBackend"


@pytest.mark.asyncio
class TestServiceLifecycle:
    """start / shutdown 테스트"""

    async def test_start_and_shutdown(self, fake_provider):
        provider = fake_provider("HotelsA")
        provider.aclose = AsyncMock()
        service = make_service([provider], health_check_interval_s=3600, cache_sweep_interval_s=3600)

        await service.start()
        assert service._health_task is not None
        assert service._sweep_task is not None

        await service.shutdown()

        assert service._health_task is None
        assert service._sweep_task is None
        provider.aclose.assert_awaited_once()

    async def test_start_without_background_tasks(self, fake_provider):
        service = make_service([fake_provider("HotelsA")])

        await service.start()

        assert service._health_task is None
        assert service._sweep_task is None
        await service.shutdown()
