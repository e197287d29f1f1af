"""유틸리티 테스트"""
import logging

import pytest

from booking_search.core.logging import SecretRedactingFilter, mask_secret, sanitize_for_log, setup_logging
from booking_search.utils import format_duration, generate_cache_key, hash_string, parse_duration_minutes


class TestDuration:
    """소요시간 파싱"""

    @pytest.mark.parametrize(
        "text,expected",
        [("2h 45m", 165), ("5h", 300), ("45m", 45), ("8H 15M", 495), ("", None), ("soon", None), (None, None)],
    )
    def test_parse(self, text, expected):
        assert parse_duration_minutes(text) == expected

    def test_format(self):
        assert format_duration(315) == "5h 15m"
        assert format_duration(-5) == "0h 0m"


class TestHashing:
    """캐시 키 해싱"""

    def test_hash_string_is_sha256(self):
        assert len(hash_string("lisbon")) == 64
        assert hash_string("lisbon") == hash_string("lisbon")

    def test_key_ignores_dict_order(self):
        first = generate_cache_key({"a": 1, "b": {"x": 1, "y": 2}})
        second = generate_cache_key({"b": {"y": 2, "x": 1}, "a": 1})

        assert first == second
        assert first.startswith("booking:search:")

    def test_custom_prefix(self):
        assert generate_cache_key({"a": 1}, prefix="test").startswith("test:")


class TestLogSanitizing:
    """로그 마스킹"""

    def test_sensitive_values_masked(self):
        assert sanitize_for_log("Bearer abc.def") == "***"
        assert sanitize_for_log("api_key=123") == "***"

    def test_long_values_truncated(self):
        assert sanitize_for_log("x" * 150, max_length=10) == "x" * 10 + "..."

    def test_empty(self):
        assert sanitize_for_log("") == "[empty]"

    def test_mask_secret(self):
        assert mask_secret("live-key-123") == "live***"
        assert mask_secret("abc") == "***"
        assert mask_secret("") == "[empty]"


class TestLoggingSetup:
    """로거 구성 / API 키 마스킹 필터"""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        yield
        setup_logging()

    def test_production_downgrades_debug(self):
        configured = setup_logging(level="DEBUG", environment="production")

        assert configured.level == logging.INFO
        assert len(configured.handlers) == 1

    def test_development_keeps_debug(self):
        configured = setup_logging(level="DEBUG", environment="development")

        assert configured.level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_httpx_quiet_at_info(self):
        setup_logging(level="INFO", environment="development")

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_filter_masks_provider_key(self):
        record = logging.LogRecord(
            "booking_search", logging.INFO, __file__, 1, "[PROVIDER] GET %s", ("/hotels?key=live-key-123",), None
        )

        assert SecretRedactingFilter(["live-key-123"]).filter(record) is True
        assert record.getMessage() == "[PROVIDER] GET /hotels?key=live***"

    def test_filter_ignores_mock_key(self):
        record = logging.LogRecord("booking_search", logging.INFO, __file__, 1, "mock-api-key in use", None, None)

        SecretRedactingFilter(["mock-api-key", ""]).filter(record)

        assert record.getMessage() == "mock-api-key in use"
