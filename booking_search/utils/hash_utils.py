"""해싱 유틸리티"""
import hashlib
import json
from typing import Any


def hash_string(text: str) -> str:
    """
    문자열을 SHA-256 해시로 변환

    Args:
        text: 해시할 문자열

    Returns:
        해시 문자열 (hex)
    """
    return hashlib.sha256(text.encode()).hexdigest()


def generate_cache_key(payload: dict[str, Any], prefix: str = "booking:search") -> str:
    """
    정규화된 검색 파라미터로 캐시 키 생성

    dict 키 순서와 무관하게 같은 키가 나오도록 sort_keys로 직렬화합니다.

    Args:
        payload: JSON 직렬화 가능한 검색 파라미터
        prefix: 키 접두어

    Returns:
        캐시 키
    """
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return f"{prefix}:{hash_string(canonical)}"
