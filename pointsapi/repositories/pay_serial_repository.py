from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from datetime import datetime

from pointsapi.models.pay_serial import PaySerial as PaySerialModel, PaySerialStatus
from pointsapi.schemas.pay_serial import PaySerialResponse
from pointsapi.repositories.base import BaseRepository
from pointsapi.utils.serials import generate_serial


class PaySerialRepository(BaseRepository[PaySerialModel, PaySerialResponse]):
    """교환 코드 리포지토리 - 스냅샷에는 password가 포함되지 않음"""

    def __init__(self, db: Session, sn_length: int = 16):
        super().__init__(PaySerialModel, PaySerialResponse, db)
        self.sn_length = sn_length

    def create_serial(
        self,
        issuer_id: int,
        point: int,
        password: str,
        expired_at: datetime,
        commit: bool = False,
    ) -> PaySerialResponse:
        return self.create(
            commit=commit,
            sn=generate_serial(self.sn_length),
            password=password,
            point=point,
            expired_at=expired_at,
            status=PaySerialStatus.ACTIVE,
            user=issuer_id,
        )

    def get_model_by_sn(self, sn: str) -> Optional[PaySerialModel]:
        return self.db.query(self.model_class).filter(self.model_class.sn == sn).first()

    def get_by_sn(self, sn: str) -> Optional[PaySerialResponse]:
        return self._to_schema(self.get_model_by_sn(sn))

    def consume(self, serial_id: int, redeemer_id: int, now: datetime) -> bool:
        """
        active -> used (compare-and-swap)

        UPDATE pay_serials SET status='used', used_by=:redeemer
        WHERE id=:id AND status='active' AND expired_at > :now

        동시에 같은 코드를 사용하려는 요청 중 하나만 True를 받습니다.
        """
        return self._conditional_update(
            serial_id,
            self.model_class.status == PaySerialStatus.ACTIVE,
            self.model_class.expired_at > now,
            status=PaySerialStatus.USED,
            used_by=redeemer_id,
        )

    def mark_expired(self, serial_id: int) -> bool:
        """active -> expired (이미 종료 상태면 False)"""
        return self._conditional_update(
            serial_id,
            self.model_class.status == PaySerialStatus.ACTIVE,
            status=PaySerialStatus.EXPIRED,
        )

    def find_overdue(self, now: datetime) -> List[PaySerialModel]:
        """만료 시각이 지났지만 아직 active인 코드"""
        return (
            self.db.query(self.model_class)
            .filter(
                self.model_class.status == PaySerialStatus.ACTIVE,
                self.model_class.expired_at <= now,
            )
            .order_by(self.model_class.id)
            .all()
        )

    def get_user_serials(
        self, user_id: int, limit: int = 10, offset: int = 0
    ) -> List[PaySerialResponse]:
        """발행 내역 (최신순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.user == user_id)
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(model_instances)

    def count_by_issuer(self, user_id: int) -> int:
        return self.count({"user": user_id})

    def get_issued_totals(self, user_id: int) -> tuple:
        """(발행 건수, 발행 포인트 합계)"""
        issued_count, total_points = (
            self.db.query(
                func.count(self.model_class.id),
                func.coalesce(func.sum(self.model_class.point), 0),
            )
            .filter(self.model_class.user == user_id)
            .one()
        )
        return int(issued_count or 0), int(total_points or 0)
