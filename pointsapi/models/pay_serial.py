import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from pointsapi.models.base import BaseModel, IdType


class PaySerialStatus(str, enum.Enum):
    ACTIVE = "active"  # 사용 가능
    USED = "used"  # 사용 완료 (종료 상태)
    EXPIRED = "expired"  # 만료 (종료 상태)


class PaySerial(BaseModel):
    """
    결제 시리얼(교환 코드)

    발행 시점에 발행자의 포인트가 차감되어 코드 자체가 포인트를 보관합니다.
    active -> used 전이는 조건부 UPDATE 한 번으로만 일어납니다.
    """

    __tablename__ = "pay_serials"
    __table_args__ = (
        UniqueConstraint("sn", name="uq_pay_serials_sn"),
        Index("idx_pay_serials_user", "user"),
        Index("idx_pay_serials_status_expired", "status", "expired_at"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    sn: Mapped[str] = mapped_column(String(64), nullable=False)
    password: Mapped[str] = mapped_column(Text, nullable=False)
    point: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expired_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    status: Mapped[PaySerialStatus] = mapped_column(
        Enum(
            PaySerialStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=PaySerialStatus.ACTIVE,
        nullable=False,
    )

    # 발행자
    user: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    # 사용자 (사용 완료 시에만 존재)
    used_by: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
