from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class UserBalanceSnapshot(BaseModel):
    """원장 관점의 사용자 스냅샷 (결제 비밀번호 제외)"""

    id: int
    nickname: str
    email: Optional[str] = None
    role: str = Field("user", description="user / admin")
    is_active: bool = True
    points: int = Field(0, description="포인트 잔액")
    goldpoints: int = Field(0, description="골드 포인트 잔액")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
