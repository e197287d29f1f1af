"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator


MOCK_API_KEY = "mock-api-key"


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 공급자 인증/엔드포인트
    skyscanner_api_key: str = MOCK_API_KEY
    skyscanner_base_url: str = "https://api.skyscanner.net/v1.0"
    booking_com_api_key: str = MOCK_API_KEY
    booking_com_base_url: str = "https://api.booking.com/v1"
    expedia_api_key: str = MOCK_API_KEY
    expedia_base_url: str = "https://api.expedia.com/v3"

    # 실제 API 호출은 이 값이 켜져 있고 mock 키가 아닐 때만
    provider_use_real_api: bool = False

    # 공급자 호출 타임아웃 (시도 1회 기준)
    provider_request_timeout_s: float = 10.0
    provider_health_timeout_s: float = 5.0

    # 회로차단(CB): 연속 실패 N회 → OPEN, 쿨다운 후 HALF_OPEN 프로브
    breaker_failure_threshold: int = 5
    breaker_reset_timeout_s: float = 60.0

    # 재시도: backoff_base * 2^(attempt-1), 상한 backoff_cap
    retry_max_retries: int = 2
    retry_backoff_base_s: float = 0.5
    retry_backoff_cap_s: float = 4.0

    # OPEN 상태 공급자 스킵 여부
    failover_enabled: bool = True

    # 검색 캐시
    cache_ttl_seconds: int = 300  # 5분
    cache_backend: str = "memory"  # memory | redis
    redis_url: str = ""
    cache_sweep_interval_s: float = 60.0

    # 주기적 헬스체크 (0이면 비활성화)
    health_check_interval_s: float = 0.0

    # API
    api_title: str = "Booking Search Service"
    api_version: str = "1.0.0"
    api_description: str = "Aggregated flight/hotel/activity search across multiple suppliers."
    api_search_timeout_s: float = 20.0

    # 로깅
    log_level: str = "INFO"

    @field_validator("cache_ttl_seconds")
    @classmethod
    def validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        return v

    @field_validator("breaker_failure_threshold")
    @classmethod
    def validate_breaker_threshold(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("breaker_failure_threshold must be positive")
        return v

    @field_validator(
        "breaker_reset_timeout_s",
        "provider_request_timeout_s",
        "provider_health_timeout_s",
        "api_search_timeout_s",
    )
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("retry_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if v < 0 or v > 5:
            raise ValueError("retry_max_retries must be between 0 and 5")
        return v

    @field_validator("retry_backoff_base_s", "retry_backoff_cap_s", "health_check_interval_s")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("backoff and interval settings must be >= 0")
        return v

    @field_validator("cache_backend")
    @classmethod
    def validate_cache_backend(cls, v: str) -> str:
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError("cache_backend must be 'memory' or 'redis'")
        return v

    @model_validator(mode="after")
    def validate_redis_url(self) -> "Settings":
        if self.cache_backend == "redis" and not self.redis_url:
            raise ValueError("redis_url must not be empty when cache_backend is 'redis'")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
