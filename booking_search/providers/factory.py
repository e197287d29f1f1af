"""Provider Factory - 설정으로 기본 공급자 생성"""

from typing import Dict, List, Optional, Type

from booking_search.core.logging import logger

from .base import BaseBookingProvider
from .booking_com import BookingComHotelProvider
from .expedia import ExpediaHotelProvider
from .skyscanner import SkyscannerFlightProvider


PROVIDER_CLASSES: Dict[str, Type[BaseBookingProvider]] = {
    "skyscanner": SkyscannerFlightProvider,
    "booking_com": BookingComHotelProvider,
    "expedia": ExpediaHotelProvider,
}


def create_provider(key: str, settings, seed: Optional[int] = None) -> BaseBookingProvider:
    """설정 키(skyscanner / booking_com / expedia)로 공급자 생성

    Raises:
        ValueError: 알 수 없는 공급자 키
    """
    provider_class = PROVIDER_CLASSES.get(key.lower())
    if provider_class is None:
        raise ValueError(f"Unknown provider: {key}")

    return provider_class(
        api_key=getattr(settings, f"{key}_api_key"),
        base_url=getattr(settings, f"{key}_base_url"),
        use_real_api=settings.provider_use_real_api,
        timeout_s=settings.provider_request_timeout_s,
        seed=seed,
    )


def create_default_providers(settings, seed: Optional[int] = None) -> List[BaseBookingProvider]:
    """기본 공급자 3종 생성 (항공 1, 호텔 2)"""
    providers = [create_provider(key, settings, seed=seed) for key in PROVIDER_CLASSES]
    for provider in providers:
        logger.info(f"[PROVIDER] configured {provider!r}")
    return providers
