"""Provider Registry - name → provider, selection by search type."""

from __future__ import annotations

from typing import Dict, List, Optional

from booking_search.core.exceptions import ProviderNotFoundException
from booking_search.core.logging import logger
from booking_search.schemas.booking_schema import SearchType


class ProviderRegistry:
    """등록된 공급자 관리

    모든 연산은 await 없이 끝나므로 이벤트 루프 안에서 원자적입니다.
    내부 dict는 노출하지 않고 복사본만 반환합니다.
    """

    def __init__(self) -> None:
        self._providers: Dict[str, object] = {}

    def register(self, provider) -> None:
        """공급자 등록 (같은 이름이면 교체)"""
        if not getattr(provider, "name", None):
            raise ValueError("provider must declare a non-empty name")
        SearchType(provider.type)

        replaced = provider.name in self._providers
        self._providers[provider.name] = provider
        logger.info(
            f"[PROVIDER] {'replaced' if replaced else 'registered'} {provider.name} ({SearchType(provider.type).value})"
        )

    def unregister(self, name: str) -> bool:
        return self._providers.pop(name, None) is not None

    def get(self, name: str):
        """이름으로 조회

        Raises:
            ProviderNotFoundException: 등록되지 않은 이름
        """
        provider = self._providers.get(name)
        if provider is None:
            raise ProviderNotFoundException(name)
        return provider

    def find(self, name: str) -> Optional[object]:
        return self._providers.get(name)

    def list(self, search_type: Optional[SearchType] = None) -> List:
        """등록 순서대로 반환 (search_type 지정 시 해당 타입만)"""
        providers = list(self._providers.values())
        if search_type is None:
            return providers
        return [p for p in providers if SearchType(p.type) == SearchType(search_type)]

    def names(self) -> List[str]:
        return list(self._providers.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._providers

    def __len__(self) -> int:
        return len(self._providers)
