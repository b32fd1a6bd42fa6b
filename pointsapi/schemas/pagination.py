from pydantic import BaseModel
from typing import Generic, TypeVar, List

T = TypeVar('T')


class Page(BaseModel, Generic[T]):
    """목록 조회 응답 (최신순)"""
    items: List[T]
    total_count: int
    has_next: bool
    limit: int
    offset: int


# 목록 조회별 페이지 크기 제한
class PaginationLimits:
    POINTRAK_HISTORY = {"min": 1, "max": 100, "default": 50}
    PAY_SERIAL_HISTORY = {"min": 1, "max": 50, "default": 10}
    TRANSACTION_HISTORY = {"min": 1, "max": 50, "default": 10}
    CASHOUT_HISTORY = {"min": 1, "max": 50, "default": 10}


def clamp_limit(limit: int, bounds: dict) -> int:
    """페이지 크기를 허용 범위로 보정"""
    if limit is None or limit < bounds["min"]:
        return bounds["default"]
    return min(limit, bounds["max"])
