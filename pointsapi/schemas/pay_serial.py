from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from pointsapi.models.pay_serial import PaySerialStatus


class PaySerialResponse(BaseModel):
    """교환 코드 스냅샷 (비밀번호는 절대 포함하지 않음)"""

    id: int = Field(..., description="코드 ID")
    sn: str = Field(..., description="교환 일련번호")
    point: int = Field(..., description="포인트")
    expired_at: datetime = Field(..., description="만료 시각 (UTC)")
    status: PaySerialStatus = Field(..., description="상태")
    user: int = Field(..., description="발행자 ID")
    used_by: Optional[int] = Field(None, description="사용자 ID")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaySerialRedeemResponse(BaseModel):
    """교환 성공 결과"""

    sn: str
    point: int = Field(..., description="적립된 포인트")
    redeemer: int = Field(..., description="사용자 ID")
    balance_after: int = Field(..., description="적립 후 잔액")


class PaySerialSweepResponse(BaseModel):
    """만료 정리 결과"""

    expired_count: int = Field(..., description="만료 처리된 코드 수")
    refunded_points: int = Field(0, description="발행자에게 반환된 포인트 합계")


class PaySerialStatsResponse(BaseModel):
    user_id: int
    issued_count: int = Field(..., description="발행한 코드 수")
    total_points: int = Field(..., description="발행한 포인트 합계")
