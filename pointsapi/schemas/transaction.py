from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from pointsapi.models.transaction import TransactionStatus


class TransactionResponse(BaseModel):
    """송금 스냅샷"""

    id: int = Field(..., description="송금 ID")
    sn: str = Field(..., description="송금 일련번호")
    from_user: int = Field(..., description="송금자 ID")
    to_user: int = Field(..., description="수신자 ID")
    serial: int = Field(..., description="호출자 상관관계 번호")
    point: int = Field(..., description="포인트")
    status: TransactionStatus = Field(..., description="상태")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransferSettlementResponse(BaseModel):
    """수락 시 잔액 이동 결과"""

    transaction: TransactionResponse
    from_balance_after: int = Field(..., description="송금자 잔액")
    to_balance_after: int = Field(..., description="수신자 잔액")


class TransferTotalsResponse(BaseModel):
    """성공한 송금 기준 사용자별 합계"""

    user_id: int = Field(..., description="사용자 ID")
    sent: int = Field(0, description="보낸 포인트 합계")
    received: int = Field(0, description="받은 포인트 합계")
