"""Result Aggregator - merge, filter, sort and summarize per-provider results.

1. 성공한 공급자 결과 병합 (에러 결과는 빈 리스트로 기여)
2. 필터 파이프라인 (가격/평점/편의시설/항공사/경유)
3. 정렬 파이프라인 (기본: 가격 오름차순, 안정 정렬)
4. 메타데이터 (가격 범위, 공급자, 타입, 평점)
"""

from __future__ import annotations

from typing import Any, Callable, List, Optional, Sequence

from booking_search.schemas.booking_schema import (
    AggregatedSearchResult,
    BookingOption,
    FilterMetadata,
    PriceRange,
    ProviderSearchResult,
    SearchFilters,
    SortBy,
    SortOrder,
    StopOption,
)


DEFAULT_CURRENCY = "USD"


class ResultAggregator:
    """공급자별 결과를 하나의 집계 결과로 변환"""

    def aggregate(
        self,
        provider_results: Sequence[ProviderSearchResult],
        filters: Optional[SearchFilters] = None,
        providers_consulted: Optional[Sequence[str]] = None,
    ) -> AggregatedSearchResult:
        """집계 실행

        Args:
            provider_results: 공급자별 원본 결과 (에러 포함)
            filters: 사후 필터/정렬 조건
            providers_consulted: 조회한 공급자 이름 (None이면 결과 봉투에서 추출)

        Returns:
            AggregatedSearchResult: 새 ID/타임스탬프가 부여된 집계 결과
        """
        if providers_consulted is None:
            providers_consulted = [r.provider for r in provider_results]

        merged = self.merge(provider_results)
        filtered = self.apply_filters(merged, filters)
        ordered = self.sort_results(filtered, filters)

        return AggregatedSearchResult(
            total_providers=len(providers_consulted),
            total_results=len(ordered),
            results=ordered,
            provider_results=list(provider_results),
            filters=self.build_metadata(ordered, providers_consulted),
        )

    @staticmethod
    def merge(provider_results: Sequence[ProviderSearchResult]) -> List[BookingOption]:
        merged: List[BookingOption] = []
        for result in provider_results:
            if result.error:
                continue
            merged.extend(result.results)
        return merged

    def apply_filters(
        self, options: List[BookingOption], filters: Optional[SearchFilters]
    ) -> List[BookingOption]:
        if filters is None:
            return list(options)
        return [option for option in options if self._matches(option, filters)]

    @staticmethod
    def _matches(option: BookingOption, filters: SearchFilters) -> bool:
        """모든 활성 필터를 통과하는가 (AND, 첫 실패에서 중단)"""
        if filters.price_range is not None:
            amount = option.price.amount
            if amount < filters.price_range.min:
                return False
            if filters.price_range.max is not None and amount > filters.price_range.max:
                return False

        # 평점 없음(0 포함)은 평점 필터 대상 아님
        if filters.rating is not None and option.rating:
            if option.rating < filters.rating.min:
                return False

        if filters.amenities and option.hotel_details is not None:
            available = set(option.hotel_details.amenities)
            if not all(amenity in available for amenity in filters.amenities):
                return False

        if option.flight_details is not None:
            if filters.airlines and option.flight_details.airline not in filters.airlines:
                return False
            if filters.stop_options:
                bucket = StopOption.from_stops(option.flight_details.stops)
                if bucket not in filters.stop_options:
                    return False

        return True

    def sort_results(
        self, options: List[BookingOption], filters: Optional[SearchFilters]
    ) -> List[BookingOption]:
        """정렬 (Python sorted는 안정 정렬 - 동점은 입력 순서 유지)"""
        if filters is None or filters.sort_by is None:
            return sorted(options, key=lambda o: o.price.amount)

        descending = filters.sort_order == SortOrder.DESC
        key = self._sort_key(filters.sort_by)

        # 키가 없는 옵션(예: 호텔의 출발시각)은 정렬 방향과 무관하게 뒤로
        keyed = [o for o in options if key(o) is not None]
        missing = [o for o in options if key(o) is None]
        return sorted(keyed, key=key, reverse=descending) + missing

    @staticmethod
    def _sort_key(sort_by: SortBy) -> Callable[[BookingOption], Any]:
        if sort_by == SortBy.PRICE:
            return lambda o: o.price.amount
        if sort_by == SortBy.RATING:
            return lambda o: o.rating or 0.0
        if sort_by == SortBy.DURATION:
            return lambda o: o.duration_minutes
        if sort_by == SortBy.DEPARTURE_TIME:
            return lambda o: o.departure_time
        raise ValueError(f"Unsupported sort key: {sort_by}")

    @staticmethod
    def build_metadata(
        options: List[BookingOption], providers_consulted: Sequence[str]
    ) -> FilterMetadata:
        """필터 UI용 메타데이터 (단일 통화 가정 - 첫 결과의 통화 사용)"""
        if options:
            prices = [o.price.amount for o in options]
            price_range = PriceRange(
                min=min(prices),
                max=max(prices),
                currency=options[0].price.currency or DEFAULT_CURRENCY,
            )
        else:
            price_range = PriceRange(min=0, max=0, currency=DEFAULT_CURRENCY)

        return FilterMetadata(
            price_range=price_range,
            providers=list(dict.fromkeys(providers_consulted)),
            types=list(dict.fromkeys(o.type for o in options)),
            ratings=sorted({o.rating or 0.0 for o in options}, reverse=True),
        )
