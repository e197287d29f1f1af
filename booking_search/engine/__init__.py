"""Engine Layer - Search Resilience and Aggregation Pipeline

This module provides the core engine layer for booking search, implementing:
- SearchOrchestrator: Fan-out search across providers with failure containment
- CircuitBreaker / CircuitBreakerRegistry: Per-provider failure gating
- RetryExecutor / RetryPolicy: Bounded retry with exponential backoff
- ResultAggregator: Merge, filter, sort and summarize results
- SearchCache: Time-windowed cache of aggregated results (memory / redis)
- ProviderRegistry: Registered providers, selection by search type
"""

from .aggregator import ResultAggregator
from .cache import (
    CacheEntry,
    MemoryCacheBackend,
    RedisCacheBackend,
    SearchCache,
    create_search_cache,
)
from .circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerRegistry,
    CircuitBreakerStats,
    CircuitState,
)
from .orchestrator import SearchOrchestrator
from .provider_registry import ProviderRegistry
from .retry import RetryExecutor, RetryPolicy

__all__ = [
    "SearchOrchestrator",
    "ResultAggregator",
    "SearchCache",
    "CacheEntry",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "create_search_cache",
    "CircuitBreaker",
    "CircuitBreakerRegistry",
    "CircuitBreakerStats",
    "CircuitState",
    "ProviderRegistry",
    "RetryExecutor",
    "RetryPolicy",
]
