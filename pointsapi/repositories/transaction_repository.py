from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, or_

from pointsapi.models.transaction import Transaction as TransactionModel, TransactionStatus
from pointsapi.schemas.transaction import TransactionResponse, TransferTotalsResponse
from pointsapi.repositories.base import BaseRepository
from pointsapi.utils.serials import generate_serial


class TransactionRepository(BaseRepository[TransactionModel, TransactionResponse]):
    """송금 리포지토리"""

    def __init__(self, db: Session, sn_length: int = 20):
        super().__init__(TransactionModel, TransactionResponse, db)
        self.sn_length = sn_length

    def create_transaction(
        self, from_user: int, to_user: int, point: int, serial: int, commit: bool = False
    ) -> TransactionResponse:
        return self.create(
            commit=commit,
            sn=generate_serial(self.sn_length),
            from_user=from_user,
            to_user=to_user,
            serial=serial,
            point=point,
            status=TransactionStatus.PENDING,
        )

    def transition(
        self,
        transaction_id: int,
        expected: TransactionStatus,
        new_status: TransactionStatus,
    ) -> bool:
        """현재 상태가 expected일 때만 new_status로 변경"""
        return self._conditional_update(
            transaction_id,
            self.model_class.status == expected,
            status=new_status,
        )

    def get_user_transactions(
        self, user_id: int, limit: int = 10, offset: int = 0
    ) -> List[TransactionResponse]:
        """보낸/받은 송금 모두 (최신순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(
                or_(
                    self.model_class.from_user == user_id,
                    self.model_class.to_user == user_id,
                )
            )
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(model_instances)

    def count_user_transactions(self, user_id: int) -> int:
        return (
            self.db.query(self.model_class)
            .filter(
                or_(
                    self.model_class.from_user == user_id,
                    self.model_class.to_user == user_id,
                )
            )
            .count()
        )

    def find_pending_by_sender(self, user_id: int) -> List[TransactionResponse]:
        """송금자가 아직 비밀번호 확인을 하지 않은 송금 (오래된 순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.from_user == user_id,
                self.model_class.status == TransactionStatus.PENDING,
            )
            .order_by(self.model_class.created_at, self.model_class.id)
            .all()
        )
        return self._to_schemas(model_instances)

    def _sum_success_points(self, *conditions) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(self.model_class.point), 0))
            .filter(self.model_class.status == TransactionStatus.SUCCESS, *conditions)
            .scalar()
        )
        return int(total or 0)

    def get_total_amount_by_user(self, user_id: int) -> TransferTotalsResponse:
        """성공한 송금 기준 보낸/받은 포인트 합계"""
        return TransferTotalsResponse(
            user_id=user_id,
            sent=self._sum_success_points(self.model_class.from_user == user_id),
            received=self._sum_success_points(self.model_class.to_user == user_id),
        )
