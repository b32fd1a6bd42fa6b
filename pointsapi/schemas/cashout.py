from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from pointsapi.models.cashout import CashoutMethod, CashoutStatus


class CashoutResponse(BaseModel):
    """출금 신청 스냅샷"""

    id: int = Field(..., description="출금 ID")
    user: int = Field(..., description="신청자 ID")
    points: int = Field(..., description="신청 포인트")
    amount: int = Field(..., description="외부 통화 금액")
    rate: int = Field(..., description="신청 시점 환율 (포인트 / 1 단위)")
    status: CashoutStatus = Field(..., description="상태")
    method: CashoutMethod = Field(..., description="출금 방식")
    account: str = Field(..., description="계좌 정보")
    note: Optional[str] = Field(None, description="신청 메모")
    admin_note: Optional[str] = Field(None, description="관리자 메모")
    processed_at: Optional[datetime] = Field(None, description="처리 시각")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CashoutStatusTotals(BaseModel):
    """관리자용 상태별 금액 합계"""

    pending_amount: int
    processing_amount: int
    completed_amount: int
    rejected_amount: int


class CashoutUserStats(BaseModel):
    """사용자 출금 통계 (완료 건 기준 금액)"""

    user_id: int
    total_amount: int
    total_count: int
    recent_amount: int = Field(..., description="최근 N일 완료 금액")


class DailyCashoutStats(BaseModel):
    date: str = Field(..., description="날짜 (YYYY-MM-DD)")
    total_amount: int
    total_points: int
    count: int
