"""자유 텍스트 소요시간("2h 30m") 파싱/포맷"""
import re
from typing import Optional


_DURATION_RE = re.compile(r"^\s*(?:(\d+)\s*h)?\s*(?:(\d+)\s*m)?\s*$", re.IGNORECASE)


def parse_duration_minutes(text: Optional[str]) -> Optional[int]:
    """
    "Xh Ym" 형식을 총 분으로 변환

    "2h 45m" → 165, "5h" → 300, "45m" → 45

    Args:
        text: 소요시간 문자열

    Returns:
        총 분 (파싱 불가 시 None)
    """
    if not text:
        return None

    match = _DURATION_RE.match(text)
    if not match or (match.group(1) is None and match.group(2) is None):
        return None

    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return hours * 60 + minutes


def format_duration(minutes: int) -> str:
    """총 분을 "Xh Ym" 형식으로 변환"""
    hours, mins = divmod(max(0, int(minutes)), 60)
    return f"{hours}h {mins}m"
