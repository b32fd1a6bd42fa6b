from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from pointsapi.models.pointrak import PointrakChannel


class PointsBalanceResponse(BaseModel):
    """포인트 잔액 응답"""

    user_id: int = Field(..., description="사용자 ID")
    balance: int = Field(..., description="현재 포인트 잔액")
    goldpoints: int = Field(0, description="골드 포인트 잔액")

    class Config:
        from_attributes = True


class PointrakEntry(BaseModel):
    """포인트 원장 항목"""

    id: int = Field(..., description="원장 항목 ID")
    sn: str = Field(..., description="원장 일련번호")
    owner: int = Field(..., description="소유자 ID")
    transaction_type: str = Field(..., description="CREDIT / DEBIT")
    points: int = Field(..., description="포인트 변화량")
    balance_after: int = Field(..., description="변동 후 잔액")
    channel: PointrakChannel = Field(..., description="변동 경로")
    detail: str = Field("", description="상세 내용")
    created_at: Optional[datetime] = Field(None, description="생성 시간")

    class Config:
        from_attributes = True


class PointrakHistoryResponse(BaseModel):
    """포인트 원장 조회 응답"""

    balance: int = Field(..., description="현재 잔액")
    entries: List[PointrakEntry] = Field(..., description="원장 항목 목록")
    total_count: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")

    class Config:
        from_attributes = True


class PointsTransactionResponse(BaseModel):
    """잔액 델타 적용 결과"""

    user_id: int = Field(..., description="사용자 ID")
    pointrak_id: int = Field(..., description="기록된 원장 항목 ID")
    pointrak_sn: str = Field(..., description="기록된 원장 일련번호")
    delta_points: int = Field(..., description="포인트 변화량")
    balance_after: int = Field(..., description="적용 후 잔액")
    channel: PointrakChannel = Field(..., description="변동 경로")

    class Config:
        from_attributes = True


class PointrakOwnerStats(BaseModel):
    """사용자별 원장 집계"""

    owner: int
    total_points: int = Field(..., description="델타 합계")
    entry_count: int = Field(..., description="항목 수")
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class PointrakChannelTotal(BaseModel):
    channel: PointrakChannel
    total_points: int
    entry_count: int


class DailyPointrakStats(BaseModel):
    """일별 원장 통계"""

    date: str = Field(..., description="날짜 (YYYY-MM-DD)")
    total_points: int = Field(..., description="델타 합계")
    user_count: int = Field(..., description="변동이 있었던 사용자 수")


class PointsIntegrityCheckResponse(BaseModel):
    """포인트 정합성 검증 응답 (원장 합계 vs 실제 잔액)"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: Optional[int] = Field(None, description="사용자 ID (단일 사용자 검증 시)")
    ledger_sum: int = Field(..., description="원장 델타 합계")
    live_balance: int = Field(..., description="users.points 합계")
    latest_balance_after: Optional[int] = Field(None, description="최신 항목의 balance_after")
    entry_count: int = Field(..., description="항목 수")
    verified_at: str = Field(..., description="검증 시간")

    class Config:
        from_attributes = True
