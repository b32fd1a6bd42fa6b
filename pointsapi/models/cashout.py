import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pointsapi.models.base import BaseModel, IdType


class CashoutStatus(str, enum.Enum):
    PENDING = "pending"  # 신청됨 (포인트 이미 차감)
    PROCESSING = "processing"  # 관리자 처리 중
    COMPLETED = "completed"  # 지급 완료 (종료 상태)
    REJECTED = "rejected"  # 거절/취소 (종료 상태)


class CashoutMethod(str, enum.Enum):
    ALIPAY = "alipay"
    WECHAT = "wechat"
    BANK = "bank"


class Cashout(BaseModel):
    """
    포인트 출금 신청

    신청 시점에 포인트를 차감(예약)하고, pending 상태에서 거절/취소될 때만 환불합니다.
    rate는 신청 시점의 환율을 기록하여 이후 환율 변경의 영향을 받지 않습니다.
    """

    __tablename__ = "cashouts"
    __table_args__ = (
        Index("idx_cashouts_user", "user"),
        Index("idx_cashouts_status", "status"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    user: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    points: Mapped[int] = mapped_column(BigInteger, nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    rate: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[CashoutStatus] = mapped_column(
        Enum(
            CashoutStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=CashoutStatus.PENDING,
        nullable=False,
    )
    method: Mapped[CashoutMethod] = mapped_column(
        Enum(
            CashoutMethod,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    account: Mapped[str] = mapped_column(String(200), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    processed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
