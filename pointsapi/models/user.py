from enum import Enum
from typing import Optional, Union

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pointsapi.models.base import BaseModel, IdType

"""User role enumeration for role-based access control."""


class UserRole(str, Enum):
    """사용자 역할 정의"""

    USER = "user"  # 일반 사용자
    ADMIN = "admin"  # 관리자

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole"]) -> bool:
        """관리자 권한 확인"""
        if isinstance(role, cls):
            role = role.value
        return role == cls.ADMIN.value


class User(BaseModel):
    """
    사용자 테이블 (원장과 관련된 필드만)

    points/goldpoints는 잔액 델타 적용(UserRepository.apply_delta)으로만 변경되며,
    어떤 시점에도 음수가 될 수 없습니다.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("points >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("goldpoints >= 0", name="ck_users_goldpoints_non_negative"),
    )

    id: Mapped[int] = mapped_column(IdType, primary_key=True, autoincrement=True)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, nullable=True
    )
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.USER.value, nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # 송금 확인용 결제 비밀번호 (검증 방식은 CredentialVerifier가 결정)
    pay_password: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    goldpoints: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, nickname={self.nickname}, points={self.points})>"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(str(self.role))
