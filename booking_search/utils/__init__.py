"""Utility helpers - export only."""

from .duration import format_duration, parse_duration_minutes
from .hash_utils import generate_cache_key, hash_string

__all__ = [
    "format_duration",
    "parse_duration_minutes",
    "generate_cache_key",
    "hash_string",
]
