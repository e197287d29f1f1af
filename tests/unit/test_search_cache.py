"""검색 캐시 유닛 테스트 (Memory/Redis 백엔드)"""
import asyncio
import json
from datetime import timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from booking_search.core.exceptions import CacheConnectionException, CacheSerializationException
from booking_search.engine.cache import (
    CacheEntry,
    MemoryCacheBackend,
    RedisCacheBackend,
    SearchCache,
    create_search_cache,
)
from booking_search.schemas.booking_schema import (
    AggregatedSearchResult,
    SearchFilters,
    SearchRequest,
)
from tests.fixtures import SEARCH_REQUESTS


def make_result(total_results=0):
    return AggregatedSearchResult(total_providers=1, total_results=total_results)


class Counter:
    """compute 호출 횟수 기록"""

    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return make_result()


class TestCacheKey:
    """캐시 키 정규화 테스트"""

    def test_same_hour_same_key(self):
        early = SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])
        late = early.model_copy(update={"check_in": early.check_in.replace(minute=55)})

        assert SearchCache.make_key(early) == SearchCache.make_key(late)

    def test_different_hour_different_key(self):
        request = SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])
        next_hour = request.model_copy(update={"check_in": request.check_in.replace(hour=16)})

        assert SearchCache.make_key(request) != SearchCache.make_key(next_hour)

    def test_naive_and_utc_dates_same_key(self):
        request = SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])
        naive = SearchRequest.model_validate(
            {**SEARCH_REQUESTS["hotel"], "check_in": request.check_in.replace(tzinfo=None)}
        )

        assert naive.check_in.tzinfo == timezone.utc
        assert SearchCache.make_key(request) == SearchCache.make_key(naive)

    def test_whitespace_normalized(self):
        request = SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])
        padded = request.model_copy(update={"destination": "  Lisbon "})

        assert SearchCache.make_key(request) == SearchCache.make_key(padded)

    def test_filters_change_key(self):
        request = SearchRequest.model_validate(SEARCH_REQUESTS["hotel"])
        filters = SearchFilters.model_validate({"price_range": {"min": 100, "max": 200}})

        assert SearchCache.make_key(request) != SearchCache.make_key(request, filters)

    def test_key_prefix(self):
        request = SearchRequest.model_validate(SEARCH_REQUESTS["flight"])

        assert SearchCache.make_key(request).startswith("booking:search:")


@pytest.mark.asyncio
class TestSearchCache:
    """SearchCache (메모리 백엔드) 테스트"""

    async def test_hit_within_ttl_returns_same_search_id(self, hotel_request, fake_clock):
        cache = SearchCache(MemoryCacheBackend(), ttl_seconds=300, clock=fake_clock)
        compute = Counter()

        first = await cache.get_or_compute(hotel_request, None, compute)
        fake_clock.advance(299)
        second = await cache.get_or_compute(hotel_request, None, compute)

        assert compute.calls == 1
        assert second.search_id == first.search_id
        assert cache.stats()["hits"] == 1
        assert cache.stats()["misses"] == 1

    async def test_expired_entry_recomputed(self, hotel_request, fake_clock):
        cache = SearchCache(MemoryCacheBackend(), ttl_seconds=300, clock=fake_clock)
        compute = Counter()

        first = await cache.get_or_compute(hotel_request, None, compute)
        fake_clock.advance(300)
        second = await cache.get_or_compute(hotel_request, None, compute)

        assert compute.calls == 2
        assert second.search_id != first.search_id

    async def test_compute_exception_not_cached(self, hotel_request, fake_clock):
        cache = SearchCache(MemoryCacheBackend(), clock=fake_clock)

        async def failing():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await cache.get_or_compute(hotel_request, None, failing)

        assert len(cache.backend) == 0

    async def test_clear(self, hotel_request, flight_request, fake_clock):
        cache = SearchCache(MemoryCacheBackend(), clock=fake_clock)
        compute = Counter()
        await cache.get_or_compute(hotel_request, None, compute)
        await cache.get_or_compute(flight_request, None, compute)

        assert await cache.clear() == 2
        await cache.get_or_compute(hotel_request, None, compute)
        assert compute.calls == 3

    async def test_sweep_removes_expired(self, hotel_request, flight_request, fake_clock):
        cache = SearchCache(MemoryCacheBackend(), ttl_seconds=60, clock=fake_clock)
        await cache.put(SearchCache.make_key(hotel_request), make_result())
        fake_clock.advance(30)
        await cache.put(SearchCache.make_key(flight_request), make_result())
        fake_clock.advance(31)

        assert await cache.sweep() == 1
        assert len(cache.backend) == 1

    async def test_backend_read_error_is_miss(self, hotel_request, fake_clock):
        backend = MemoryCacheBackend()
        backend.get = AsyncMock(side_effect=CacheSerializationException("deserialize", "bad"))
        cache = SearchCache(backend, clock=fake_clock)
        compute = Counter()

        result = await cache.get_or_compute(hotel_request, None, compute)

        assert compute.calls == 1
        assert result.total_providers == 1

    async def test_backend_write_error_swallowed(self, hotel_request, fake_clock):
        backend = MemoryCacheBackend()
        backend.set = AsyncMock(side_effect=ConnectionError("redis down"))
        cache = SearchCache(backend, clock=fake_clock)

        result = await cache.get_or_compute(hotel_request, None, Counter())

        assert result is not None

    async def test_concurrent_misses_leave_single_entry(self, hotel_request, fake_clock):
        """같은 키 동시 miss - 각자 계산, 마지막 쓰기만 남음"""
        cache = SearchCache(MemoryCacheBackend(), clock=fake_clock)
        produced = []

        def delayed(seconds):
            async def compute():
                await asyncio.sleep(seconds)
                result = make_result()
                produced.append(result.search_id)
                return result
            return compute

        results = await asyncio.gather(
            *(cache.get_or_compute(hotel_request, None, delayed(s)) for s in (0.03, 0.01, 0.02))
        )

        assert len({r.search_id for r in results}) == 3
        assert len(cache.backend) == 1
        cached = await cache.get(SearchCache.make_key(hotel_request))
        assert cached.search_id == produced[-1]
        assert cached.search_id == results[0].search_id


@pytest.mark.asyncio
class TestRedisCacheBackend:
    """Redis 백엔드 테스트 (클라이언트 Mock)"""

    async def test_get_hit(self):
        entry = CacheEntry(result=make_result(3), created_at=1000.0)
        client = MagicMock()
        client.get = AsyncMock(return_value=entry.to_json())
        backend = RedisCacheBackend(client=client)

        loaded = await backend.get("booking:search:abc")

        assert loaded.created_at == 1000.0
        assert loaded.result.search_id == entry.result.search_id
        assert loaded.result.total_results == 3

    async def test_get_miss(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        backend = RedisCacheBackend(client=client)

        assert await backend.get("booking:search:abc") is None

    async def test_get_corrupted(self):
        client = MagicMock()
        client.get = AsyncMock(return_value="{not json")
        backend = RedisCacheBackend(client=client)

        with pytest.raises(CacheSerializationException):
            await backend.get("booking:search:abc")

    async def test_set_uses_ttl(self):
        client = MagicMock()
        client.setex = AsyncMock()
        backend = RedisCacheBackend(client=client)
        entry = CacheEntry(result=make_result(), created_at=1000.0)

        await backend.set("booking:search:abc", entry, 300)

        key, ttl, payload = client.setex.call_args.args
        assert key == "booking:search:abc"
        assert ttl == 300
        assert json.loads(payload)["created_at"] == 1000.0

    async def test_clear_deletes_prefixed_keys(self):
        async def scan_iter(match):
            assert match == "booking:search:*"
            for key in ("booking:search:a", "booking:search:b"):
                yield key

        client = MagicMock()
        client.scan_iter = scan_iter
        client.delete = AsyncMock()
        backend = RedisCacheBackend(client=client)

        assert await backend.clear() == 2
        client.delete.assert_awaited_once_with("booking:search:a", "booking:search:b")

    async def test_close(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        backend = RedisCacheBackend(client=client)

        await backend.close()

        client.aclose.assert_awaited_once()


def test_invalid_ttl():
    with pytest.raises(ValueError):
        SearchCache(ttl_seconds=0)


def test_redis_empty_url_rejected():
    with pytest.raises(CacheConnectionException):
        RedisCacheBackend(redis_url="")


@patch("booking_search.engine.cache.Redis")
def test_redis_from_url(mock_redis):
    RedisCacheBackend(redis_url="redis://localhost:6379/0")

    mock_redis.from_url.assert_called_once()
    assert mock_redis.from_url.call_args.args[0] == "redis://localhost:6379/0"


class TestCreateSearchCache:
    """설정 기반 생성"""

    def test_memory_backend(self):
        settings = MagicMock(cache_backend="memory", cache_ttl_seconds=120)

        cache = create_search_cache(settings)

        assert isinstance(cache.backend, MemoryCacheBackend)
        assert cache.ttl_seconds == 120

    @patch("booking_search.engine.cache.Redis")
    def test_redis_backend(self, mock_redis):
        settings = MagicMock(cache_backend="redis", redis_url="redis://cache:6379/0", cache_ttl_seconds=300)

        cache = create_search_cache(settings)

        assert isinstance(cache.backend, RedisCacheBackend)
