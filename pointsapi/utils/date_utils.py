"""
UTC 시간 유틸리티

원장 관련 시각(만료, 처리 시각, 통계 구간)은 모두 UTC 기준으로 다룹니다.
SQLite는 타임존 정보를 저장하지 않으므로 읽어온 naive datetime은 UTC로 간주합니다.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Optional, Tuple

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """현재 UTC 시간을 반환합니다."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """naive datetime은 UTC로 간주하여 타임존을 붙이고, aware datetime은 UTC로 변환합니다."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).strftime("%Y-%m-%d %H:%M:%S")


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    """해당 날짜의 [00:00, 다음날 00:00) UTC 구간"""
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def date_range_bounds(start_date: date, end_date: date) -> Tuple[datetime, datetime]:
    """start_date 00:00 부터 end_date 다음날 00:00 직전까지 (양 끝 날짜 포함)"""
    start, _ = day_bounds(start_date)
    _, end = day_bounds(end_date)
    return start, end
