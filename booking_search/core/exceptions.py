"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class BookingSearchException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 요청 검증 관련 예외
class ValidationException(BookingSearchException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                        details or {"field": field, "reason": reason})


class MissingFieldException(ValidationException):
    """검색 타입에 필요한 필드 누락"""
    def __init__(self, field: str, search_type: str, details: Optional[dict[str, Any]] = None):
        super().__init__(field, f"required for {search_type} search",
                         details or {"field": field, "search_type": search_type})
        self.error_code = "MISSING_FIELD"


# 공급자 관련 예외
class ProviderException(BookingSearchException):
    """공급자 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "PROVIDER_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "PROVIDER_ERROR", details)


class ProviderUnavailableException(ProviderException):
    """회로차단 OPEN - 공급자 호출 없이 거절"""
    def __init__(self, provider: str, details: Optional[dict[str, Any]] = None):
        message = f"Provider {provider} is unhealthy (circuit open)"
        super().__init__(message, "PROVIDER_UNAVAILABLE", details or {"provider": provider})


class ProviderCallException(ProviderException):
    """공급자 호출 실패 (네트워크/파싱)"""
    def __init__(self, provider: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Provider {provider} call failed: {reason}"
        super().__init__(message, "PROVIDER_CALL_FAILED",
                        details or {"provider": provider, "reason": reason})


class ProviderTimeoutException(ProviderException):
    """공급자 호출 타임아웃"""
    def __init__(self, provider: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Provider {provider} timed out after {timeout_s}s"
        super().__init__(message, "PROVIDER_TIMEOUT",
                        details or {"provider": provider, "timeout_s": timeout_s})


class NoProvidersAvailableException(ProviderException):
    """요청 타입에 맞는 공급자가 하나도 없음"""
    def __init__(self, search_type: str, details: Optional[dict[str, Any]] = None):
        message = f"No providers available for {search_type}"
        super().__init__(message, "NO_PROVIDERS", details or {"search_type": search_type})


class ProviderNotFoundException(ProviderException):
    """등록되지 않은 공급자 이름"""
    def __init__(self, provider: str, details: Optional[dict[str, Any]] = None):
        message = f"Provider {provider} not found"
        super().__init__(message, "PROVIDER_NOT_FOUND", details or {"provider": provider})


# 예약 관련 예외
class BookingNotFoundException(BookingSearchException):
    """예약 옵션을 찾을 수 없음"""
    def __init__(self, booking_id: str, details: Optional[dict[str, Any]] = None):
        message = f"Booking option not found: {booking_id}"
        super().__init__(message, "BOOKING_NOT_FOUND", details or {"booking_id": booking_id})


class BookingNotSupportedException(BookingSearchException):
    """직접 예약을 지원하지 않는 공급자"""
    def __init__(self, provider: str, details: Optional[dict[str, Any]] = None):
        message = f"Direct booking not supported by provider {provider}"
        super().__init__(message, "BOOKING_NOT_SUPPORTED", details or {"provider": provider})


# 캐시 관련 예외
class CacheException(BookingSearchException):
    """캐시 관련 예외"""
    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheConnectionException(CacheException):
    """캐시 연결 실패"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Failed to connect to cache: {reason}"
        super().__init__(message, "CACHE_CONNECTION_ERROR", details)


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                        details or {"operation": operation, "reason": reason})


class SearchTimeoutException(BookingSearchException):
    """검색 전체 시간 초과 (HTTP 계층)"""
    def __init__(self, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Search did not complete within {timeout_s}s"
        super().__init__(message, "SEARCH_TIMEOUT", details or {"timeout_s": timeout_s})
