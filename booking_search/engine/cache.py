"""Search Cache - time-windowed cache of aggregated search results.

Key = (검색 파라미터, 필터) 정규화 + 날짜 필드를 시 단위로 내림 → SHA-256.
TTL 이내 조회는 같은 AggregatedSearchResult (같은 search_id)를 그대로 반환합니다.

백엔드:
- MemoryCacheBackend: 프로세스 내 dict (기본값)
- RedisCacheBackend: redis.asyncio (여러 워커가 캐시를 공유할 때)

캐시 장애는 로그만 남기고 miss로 취급합니다 (검색 자체는 계속 진행).
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from redis.asyncio import Redis

from booking_search.core.exceptions import CacheConnectionException, CacheSerializationException
from booking_search.core.logging import logger
from booking_search.schemas.booking_schema import (
    DATE_FIELDS,
    AggregatedSearchResult,
    SearchFilters,
    SearchRequest,
)
from booking_search.utils.hash_utils import generate_cache_key


CACHE_KEY_PREFIX = "booking:search"


@dataclass
class CacheEntry:
    """캐시 엔트리 (생성 시각은 epoch seconds)"""

    result: AggregatedSearchResult
    created_at: float

    def is_fresh(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at < ttl_seconds

    def to_json(self) -> str:
        return json.dumps(
            {"created_at": self.created_at, "result": self.result.model_dump(mode="json")},
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            result=AggregatedSearchResult.model_validate(data["result"]),
            created_at=float(data["created_at"]),
        )


class CacheBackend(Protocol):
    """캐시 저장소 인터페이스"""

    async def get(self, key: str) -> Optional[CacheEntry]: ...

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None: ...

    async def clear(self) -> int: ...

    async def sweep(self, now: float, ttl_seconds: float) -> int: ...

    async def close(self) -> None: ...


class MemoryCacheBackend:
    """프로세스 내 캐시 (만료는 조회 시 판정, 물리 삭제는 sweep)"""

    def __init__(self) -> None:
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None:
        self._entries[key] = entry

    async def clear(self) -> int:
        count = len(self._entries)
        self._entries = {}
        return count

    async def sweep(self, now: float, ttl_seconds: float) -> int:
        expired = [
            key for key, entry in list(self._entries.items())
            if not entry.is_fresh(now, ttl_seconds)
        ]
        for key in expired:
            self._entries.pop(key, None)
        return len(expired)

    async def close(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._entries)


class RedisCacheBackend:
    """Redis 캐시 (만료는 Redis TTL에 위임)"""

    def __init__(self, redis_url: str = "", client: Optional[Redis] = None, prefix: str = CACHE_KEY_PREFIX):
        if client is None:
            if not redis_url:
                raise CacheConnectionException("redis_url is empty")
            client = Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        self.redis_client = client
        self.prefix = prefix

    async def get(self, key: str) -> Optional[CacheEntry]:
        raw = await self.redis_client.get(key)
        if not raw:
            return None
        try:
            return CacheEntry.from_json(raw)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise CacheSerializationException("deserialize", str(e)) from e

    async def set(self, key: str, entry: CacheEntry, ttl_seconds: int) -> None:
        try:
            payload = entry.to_json()
        except (TypeError, ValueError) as e:
            raise CacheSerializationException("serialize", str(e)) from e
        await self.redis_client.setex(key, ttl_seconds, payload)

    async def clear(self) -> int:
        keys: List[str] = []
        async for key in self.redis_client.scan_iter(match=f"{self.prefix}:*"):
            keys.append(key)
        if keys:
            await self.redis_client.delete(*keys)
        return len(keys)

    async def sweep(self, now: float, ttl_seconds: float) -> int:
        # Redis가 setex TTL로 직접 만료
        return 0

    async def close(self) -> None:
        await self.redis_client.aclose()


class SearchCache:
    """검색 결과 캐시

    Usage:
        cache = SearchCache(MemoryCacheBackend(), ttl_seconds=300)
        result = await cache.get_or_compute(request, filters, compute)
    """

    LOCK_STRIPES = 64

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.backend: CacheBackend = backend if backend is not None else MemoryCacheBackend()
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # 키 단위 상호배제 (서로 다른 키는 대부분 다른 stripe)
        self._locks = [asyncio.Lock() for _ in range(self.LOCK_STRIPES)]
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(request: SearchRequest, filters: Optional[SearchFilters] = None) -> str:
        """정규화된 (요청, 필터) → 캐시 키

        날짜/시간 필드는 시 단위로 내림 (10:05와 10:55는 같은 키).
        """
        params = request.normalized()
        floored: Dict[str, Any] = {}
        for field in DATE_FIELDS:
            value = getattr(params, field)
            if value is not None:
                floored[field] = value.replace(minute=0, second=0, microsecond=0)
        if floored:
            params = params.model_copy(update=floored)

        payload = {
            "params": params.model_dump(mode="json", exclude_none=True),
            "filters": filters.model_dump(mode="json", exclude_none=True) if filters else None,
        }
        return generate_cache_key(payload, prefix=CACHE_KEY_PREFIX)

    def _lock_for(self, key: str) -> asyncio.Lock:
        return self._locks[hash(key) % self.LOCK_STRIPES]

    async def get(self, key: str) -> Optional[AggregatedSearchResult]:
        """유효한 엔트리 조회 (만료/장애 시 None)"""
        async with self._lock_for(key):
            try:
                entry = await self.backend.get(key)
            except Exception as e:
                logger.error(f"[CACHE] read failed for {key}: {e}")
                return None

        if entry is None or not entry.is_fresh(self._clock(), self.ttl_seconds):
            return None
        return entry.result

    async def put(self, key: str, result: AggregatedSearchResult) -> None:
        """엔트리 저장 (마지막 쓰기 우선)"""
        entry = CacheEntry(result=result, created_at=self._clock())
        async with self._lock_for(key):
            try:
                await self.backend.set(key, entry, self.ttl_seconds)
            except Exception as e:
                logger.error(f"[CACHE] write failed for {key}: {e}")

    async def get_or_compute(
        self,
        request: SearchRequest,
        filters: Optional[SearchFilters],
        compute: Callable[[], Awaitable[AggregatedSearchResult]],
    ) -> AggregatedSearchResult:
        """캐시 hit이면 그대로, miss면 compute 후 저장

        같은 키의 동시 miss는 각자 계산합니다 (중복 작업 허용, 락은 계산 동안 잡지 않음).
        compute의 예외는 저장 없이 그대로 전파됩니다.
        """
        key = self.make_key(request, filters)

        cached = await self.get(key)
        if cached is not None:
            self.hits += 1
            logger.info(f"[CACHE] hit {key} (search_id={cached.search_id})")
            return cached

        self.misses += 1
        logger.info(f"[CACHE] miss {key}")
        result = await compute()
        await self.put(key, result)
        return result

    async def clear(self) -> int:
        """전체 무효화 (부분 무효화 없음)"""
        try:
            count = await self.backend.clear()
        except Exception as e:
            logger.error(f"[CACHE] clear failed: {e}")
            return 0
        logger.info(f"[CACHE] cleared {count} entries")
        return count

    async def sweep(self) -> int:
        """만료 엔트리 물리 삭제"""
        try:
            removed = await self.backend.sweep(self._clock(), self.ttl_seconds)
        except Exception as e:
            logger.error(f"[CACHE] sweep failed: {e}")
            return 0
        if removed:
            logger.debug(f"[CACHE] swept {removed} expired entries")
        return removed

    async def close(self) -> None:
        try:
            await self.backend.close()
        except Exception as e:
            logger.warning(f"[CACHE] close failed: {e}")

    def stats(self) -> Dict[str, Any]:
        return {
            "backend": type(self.backend).__name__,
            "ttl_seconds": self.ttl_seconds,
            "hits": self.hits,
            "misses": self.misses,
        }


def create_search_cache(settings) -> SearchCache:
    """설정으로 캐시 생성 (cache_backend: memory | redis)"""
    if settings.cache_backend == "redis":
        backend: CacheBackend = RedisCacheBackend(settings.redis_url)
        logger.info("[CACHE] using redis backend")
    else:
        backend = MemoryCacheBackend()
    return SearchCache(backend, ttl_seconds=settings.cache_ttl_seconds)
