"""
포인트 원장(Pointrak) 리포지토리

원장은 추가 전용(Append-only)입니다. 이 리포지토리는 항목 생성과 조회/집계만 제공하며
수정/삭제 메서드를 두지 않습니다.

- 항목 생성: 잔액 변동과 같은 트랜잭션 안에서 호출 (commit=False)
- 조회: 사용자별 원장(최신순), 기간별 원장
- 집계: 사용자/채널/기간별 합계, 일별 통계
- 정합성: 최신 balance_after와 실제 잔액 비교
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func, select
from datetime import datetime

from pointsapi.models.pointrak import Pointrak as PointrakModel, PointrakChannel
from pointsapi.models.user import User as UserModel
from pointsapi.schemas.points import (
    DailyPointrakStats,
    PointrakChannelTotal,
    PointrakEntry,
    PointrakOwnerStats,
    PointsIntegrityCheckResponse,
)
from pointsapi.repositories.base import BaseRepository
from pointsapi.utils.date_utils import utc_now, format_datetime
from pointsapi.utils.serials import generate_serial


class PointrakRepository(BaseRepository[PointrakModel, PointrakEntry]):
    """포인트 원장 리포지토리"""

    def __init__(self, db: Session, sn_length: int = 20):
        super().__init__(PointrakModel, PointrakEntry, db)
        self.sn_length = sn_length

    def _to_schema(self, model_instance: Optional[PointrakModel]) -> Optional[PointrakEntry]:
        """
        SQLAlchemy 모델을 Pydantic 스키마로 변환

        points의 부호에 따라 거래 유형(CREDIT/DEBIT)을 결정합니다.
        """
        if model_instance is None:
            return None

        points = model_instance.points
        return PointrakEntry(
            id=model_instance.id,
            sn=model_instance.sn,
            owner=model_instance.owner,
            transaction_type="CREDIT" if points > 0 else "DEBIT",
            points=points,
            balance_after=model_instance.balance_after,
            channel=model_instance.channel,
            detail=model_instance.detail or "",
            created_at=model_instance.created_at,
        )

    def append(
        self,
        owner: int,
        points: int,
        channel: PointrakChannel,
        balance_after: int,
        detail: str = "",
        commit: bool = False,
    ) -> PointrakEntry:
        """원장 항목 1건 추가 (sn은 삽입 시 생성)"""
        return self.create(
            commit=commit,
            sn=generate_serial(self.sn_length),
            owner=owner,
            points=points,
            channel=channel,
            balance_after=balance_after,
            detail=detail,
        )

    def get_by_sn(self, sn: str) -> Optional[PointrakEntry]:
        return self.get_by_field("sn", sn)

    def get_owner_entries(
        self, owner: int, limit: int = 50, offset: int = 0
    ) -> List[PointrakEntry]:
        """사용자 원장 조회 (최신순)"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(self.model_class.owner == owner)
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(model_instances)

    def count_by_owner(self, owner: int) -> int:
        return self.count({"owner": owner})

    def get_entries_by_date_range(
        self, owner: int, start_time: datetime, end_time: datetime
    ) -> List[PointrakEntry]:
        """[start_time, end_time) 구간의 원장 항목"""
        model_instances = (
            self.db.query(self.model_class)
            .filter(
                self.model_class.owner == owner,
                self.model_class.created_at >= start_time,
                self.model_class.created_at < end_time,
            )
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .all()
        )
        return self._to_schemas(model_instances)

    def get_total_points_by_owner(
        self,
        owner: int,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> PointrakOwnerStats:
        """사용자별 델타 합계와 항목 수 (기간 지정 시 [start_time, end_time))"""
        query = self.db.query(
            func.coalesce(func.sum(self.model_class.points), 0),
            func.count(self.model_class.id),
        ).filter(self.model_class.owner == owner)

        if start_time is not None:
            query = query.filter(self.model_class.created_at >= start_time)
        if end_time is not None:
            query = query.filter(self.model_class.created_at < end_time)

        total_points, entry_count = query.one()
        return PointrakOwnerStats(
            owner=owner,
            total_points=int(total_points or 0),
            entry_count=int(entry_count or 0),
            start_time=start_time,
            end_time=end_time,
        )

    def get_total_points_by_channel(
        self, channel: PointrakChannel, owner: Optional[int] = None
    ) -> PointrakChannelTotal:
        """채널별 델타 합계 (owner 지정 시 해당 사용자만)"""
        query = self.db.query(
            func.coalesce(func.sum(self.model_class.points), 0),
            func.count(self.model_class.id),
        ).filter(self.model_class.channel == channel)

        if owner is not None:
            query = query.filter(self.model_class.owner == owner)

        total_points, entry_count = query.one()
        return PointrakChannelTotal(
            channel=channel,
            total_points=int(total_points or 0),
            entry_count=int(entry_count or 0),
        )

    def get_daily_stats(
        self, start_time: datetime, end_time: datetime
    ) -> List[DailyPointrakStats]:
        """일별 델타 합계와 변동 사용자 수 (날짜 오름차순)"""
        day = func.date(self.model_class.created_at)
        rows = (
            self.db.query(
                day.label("day"),
                func.coalesce(func.sum(self.model_class.points), 0),
                func.count(func.distinct(self.model_class.owner)),
            )
            .filter(
                self.model_class.created_at >= start_time,
                self.model_class.created_at < end_time,
            )
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [
            DailyPointrakStats(
                date=str(row[0]), total_points=int(row[1] or 0), user_count=int(row[2] or 0)
            )
            for row in rows
        ]

    def get_latest_entry(self, owner: int) -> Optional[PointrakModel]:
        return (
            self.db.query(self.model_class)
            .filter(self.model_class.owner == owner)
            .order_by(desc(self.model_class.id))
            .first()
        )

    def verify_integrity_for_user(self, user_id: int) -> PointsIntegrityCheckResponse:
        """
        특정 사용자의 정합성 검증

        최신 원장 항목의 balance_after가 users.points와 일치해야 합니다.
        초기 시드 잔액은 원장에 기록되지 않으므로 델타 합계는 참고값으로만 반환합니다.
        """
        stats = self.get_total_points_by_owner(user_id)
        live_balance = (
            self.db.query(UserModel.points).filter(UserModel.id == user_id).scalar()
        ) or 0
        latest = self.get_latest_entry(user_id)
        latest_balance = latest.balance_after if latest is not None else None

        status = "OK" if latest_balance is None or latest_balance == live_balance else "MISMATCH"

        return PointsIntegrityCheckResponse(
            status=status,
            user_id=user_id,
            ledger_sum=stats.total_points,
            live_balance=live_balance,
            latest_balance_after=latest_balance,
            entry_count=stats.entry_count,
            verified_at=format_datetime(utc_now()),
        )

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """
        전체 정합성 검증

        원장이 있는 사용자들의 최신 balance_after 합계가 해당 사용자들의 실제 잔액 합계와
        일치해야 합니다.
        """
        latest_ids = select(func.max(self.model_class.id)).group_by(self.model_class.owner)
        latest_balances = (
            self.db.query(func.coalesce(func.sum(self.model_class.balance_after), 0))
            .filter(self.model_class.id.in_(latest_ids))
            .scalar()
        )
        owners = select(self.model_class.owner).distinct()
        live_balance = (
            self.db.query(func.coalesce(func.sum(UserModel.points), 0))
            .filter(UserModel.id.in_(owners))
            .scalar()
        )
        ledger_sum = self.db.query(
            func.coalesce(func.sum(self.model_class.points), 0)
        ).scalar()
        entry_count = self.db.query(func.count(self.model_class.id)).scalar()

        status = "OK" if int(latest_balances or 0) == int(live_balance or 0) else "MISMATCH"

        return PointsIntegrityCheckResponse(
            status=status,
            user_id=None,
            ledger_sum=int(ledger_sum or 0),
            live_balance=int(live_balance or 0),
            latest_balance_after=int(latest_balances or 0),
            entry_count=int(entry_count or 0),
            verified_at=format_datetime(utc_now()),
        )
