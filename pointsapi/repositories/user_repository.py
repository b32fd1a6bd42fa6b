from typing import Optional
from sqlalchemy.orm import Session

from pointsapi.models.user import User as UserModel, UserRole
from pointsapi.schemas.user import UserBalanceSnapshot
from pointsapi.repositories.base import BaseRepository


class UserRepository(BaseRepository[UserModel, UserBalanceSnapshot]):
    """사용자 리포지토리 - 잔액 저장소"""

    def __init__(self, db: Session):
        super().__init__(UserModel, UserBalanceSnapshot, db)

    def create_user(
        self,
        nickname: str,
        email: Optional[str] = None,
        points: int = 0,
        pay_password: Optional[str] = None,
        role: UserRole = UserRole.USER,
        commit: bool = True,
    ) -> UserBalanceSnapshot:
        """사용자 생성 (초기 잔액은 원장을 거치지 않는 시드 값)"""
        return self.create(
            commit=commit,
            nickname=nickname,
            email=email,
            points=points,
            pay_password=pay_password,
            role=role.value,
            is_active=True,
        )

    def get_balance(self, user_id: int, for_update: bool = False) -> Optional[int]:
        """현재 잔액 조회 (identity map을 거치지 않고 DB 값을 직접 읽음)"""
        query = self.db.query(self.model_class.points).filter(
            self.model_class.id == user_id
        )
        if for_update:
            query = query.with_for_update()
        row = query.first()
        return row[0] if row is not None else None

    def lock_user(self, user_id: int) -> Optional[UserModel]:
        """SELECT ... FOR UPDATE (SQLite에서는 FOR UPDATE가 무시됨)"""
        model_instance = self.get_model(user_id, for_update=True)
        if model_instance is not None:
            self.db.refresh(model_instance)
        return model_instance

    def apply_delta(self, user_id: int, delta: int) -> Optional[int]:
        """
        잔액에 delta를 원자적으로 적용

        UPDATE users SET points = points + :delta
        WHERE id = :id AND points + :delta >= 0

        잔액 충분 여부 검사가 쓰기 문장 자체에 포함되므로, 사전 조회 값이
        동시 요청에 의해 무효화되어도 음수 잔액이 만들어지지 않습니다.

        Returns:
            적용 후 잔액, 조건에 맞는 행이 없으면(사용자 없음 또는 잔액 부족) None
        """
        applied = self._conditional_update(
            user_id,
            self.model_class.points + delta >= 0,
            points=self.model_class.points + delta,
        )
        if not applied:
            return None
        return self.get_balance(user_id)

    def is_admin(self, user_id: int) -> bool:
        user = self.get_model(user_id)
        return user is not None and user.is_admin
