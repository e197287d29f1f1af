"""Logging setup for the booking search service.

A single named logger ("booking_search") is shared by every layer. Messages
are tagged by stage ([ORCHESTRATOR], [CACHE], [CIRCUIT_BREAKER], ...) and
provider API keys are redacted before any handler sees the record.
"""
import logging
import os
import sys
from typing import Iterable, List, Optional

from booking_search.core.config import MOCK_API_KEY, settings


LOGGER_NAME = "booking_search"

# 환경별 포맷 (production은 호출 위치 생략)
LOG_FORMATS = {
    "production": "%(asctime)s [%(levelname)s] %(message)s",
    "development": "%(asctime)s [%(levelname)s] %(name)s %(module)s.%(funcName)s:%(lineno)d | %(message)s",
}
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 요청 URL/헤더를 INFO로 남기는 HTTP 라이브러리 로거
NOISY_LOGGERS = ("httpx", "httpcore")

SENSITIVE_MARKERS = ("password", "token", "api_key", "apikey", "secret", "bearer")


def mask_secret(secret: str) -> str:
    """API 키 등 비밀값을 앞 4자리만 남기고 마스킹"""
    if not secret:
        return "[empty]"
    if len(secret) <= 4:
        return "***"
    return secret[:4] + "***"


class SecretRedactingFilter(logging.Filter):
    """로그 레코드에서 공급자 API 키를 마스킹

    mock 키와 빈 값은 대상에서 제외합니다.
    """

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets: List[str] = [s for s in secrets if s and s != MOCK_API_KEY]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, mask_secret(secret))
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _configured_secrets() -> List[str]:
    return [
        settings.skyscanner_api_key,
        settings.booking_com_api_key,
        settings.expedia_api_key,
    ]


def setup_logging(level: Optional[str] = None, environment: Optional[str] = None) -> logging.Logger:
    """booking_search 로거 구성 (재호출 시 핸들러 교체)

    Args:
        level: 로그 레벨 (기본: settings.log_level)
        environment: 실행 환경 (기본: ENVIRONMENT 환경 변수)

    Returns:
        구성된 로거
    """
    environment = (environment or os.getenv("ENVIRONMENT", "development")).lower()
    is_production = environment == "production"

    level_name = (level or settings.log_level).upper()
    if is_production and level_name == "DEBUG":
        level_name = "INFO"
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter(
            fmt=LOG_FORMATS["production" if is_production else "development"],
            datefmt=DATE_FORMAT,
        )
    )
    handler.addFilter(SecretRedactingFilter(_configured_secrets()))

    configured = logging.getLogger(LOGGER_NAME)
    configured.setLevel(log_level)
    for existing in list(configured.handlers):
        configured.removeHandler(existing)
    configured.addHandler(handler)
    configured.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING)

    return configured


logger = setup_logging()


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """민감 정보가 보이면 통째로 가리고, 길면 자름"""
    if not value:
        return "[empty]"

    lowered = value.lower()
    result = "***" if any(marker in lowered for marker in SENSITIVE_MARKERS) else value

    if len(result) > max_length:
        result = result[:max_length] + "..."
    return result
