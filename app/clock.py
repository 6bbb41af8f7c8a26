"""
시간 유틸리티

서비스는 clock 콜러블을 주입받는다 (테스트에서 고정 시각 사용).
"""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """timezone-aware UTC 현재 시각"""
    return datetime.now(timezone.utc)
