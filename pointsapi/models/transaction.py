import enum

from sqlalchemy import BigInteger, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from pointsapi.models.base import BaseModel, IdType


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"  # 생성됨, 송금자 확인 대기
    PASSWORD = "password"  # 송금자 비밀번호 확인 완료, 수신자 수락 대기
    FAIL = "fail"  # 수락 시점 잔액 부족
    SUCCESS = "success"  # 포인트 이동 완료
    REFUSE = "refuse"  # 수신자 거절


class Transaction(BaseModel):
    """
    사용자 간 포인트 송금

    생성/비밀번호 확인 단계에서는 잔액이 움직이지 않으며,
    password -> success 전이에서만 정확히 한 번 포인트가 이동합니다.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("sn", name="uq_transactions_sn"),
        Index("idx_transactions_from_user", "from_user"),
        Index("idx_transactions_to_user", "to_user"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    sn: Mapped[str] = mapped_column(String(64), nullable=False)
    from_user: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    to_user: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    # 호출자가 넘기는 상관관계 번호 (PaySerial 외래키 아님)
    serial: Mapped[int] = mapped_column(BigInteger, nullable=False)
    point: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(
            TransactionStatus,
            native_enum=False,
            length=20,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=TransactionStatus.PENDING,
        nullable=False,
    )
