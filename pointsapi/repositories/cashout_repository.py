"""
출금 리포지토리

상태 변경은 모두 기대 상태를 조건으로 건 UPDATE로 수행합니다.
통계 쿼리에서 '금액'은 지급이 확정된 completed 건만 집계합니다
(상태별 합계는 예외적으로 모든 상태를 반환).
"""

from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func
from datetime import datetime

from pointsapi.models.cashout import Cashout as CashoutModel, CashoutMethod, CashoutStatus
from pointsapi.schemas.cashout import CashoutResponse, CashoutStatusTotals, DailyCashoutStats
from pointsapi.repositories.base import BaseRepository


class CashoutRepository(BaseRepository[CashoutModel, CashoutResponse]):
    """출금 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(CashoutModel, CashoutResponse, db)

    def create_cashout(
        self,
        user_id: int,
        points: int,
        amount: int,
        rate: int,
        method: CashoutMethod,
        account: str,
        note: Optional[str] = None,
        commit: bool = False,
    ) -> CashoutResponse:
        return self.create(
            commit=commit,
            user=user_id,
            points=points,
            amount=amount,
            rate=rate,
            status=CashoutStatus.PENDING,
            method=method,
            account=account,
            note=note,
        )

    def transition(
        self,
        cashout_id: int,
        expected: CashoutStatus,
        new_status: CashoutStatus,
        **values: Any,
    ) -> bool:
        """현재 상태가 expected일 때만 new_status로 변경 (추가 컬럼 동시 갱신)"""
        return self._conditional_update(
            cashout_id,
            self.model_class.status == expected,
            status=new_status,
            **values,
        )

    def _filtered_query(
        self,
        user_id: Optional[int] = None,
        status: Optional[CashoutStatus] = None,
        method: Optional[CashoutMethod] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ):
        query = self.db.query(self.model_class)
        if user_id is not None:
            query = query.filter(self.model_class.user == user_id)
        if status is not None:
            query = query.filter(self.model_class.status == status)
        if method is not None:
            query = query.filter(self.model_class.method == method)
        if start_time is not None:
            query = query.filter(self.model_class.created_at >= start_time)
        if end_time is not None:
            query = query.filter(self.model_class.created_at < end_time)
        return query

    def list_cashouts(
        self,
        limit: int = 10,
        offset: int = 0,
        **filters: Any,
    ) -> List[CashoutResponse]:
        """필터 조건 출금 목록 (최신순)"""
        model_instances = (
            self._filtered_query(**filters)
            .order_by(desc(self.model_class.created_at), desc(self.model_class.id))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schemas(model_instances)

    def count_cashouts(self, **filters: Any) -> int:
        return self._filtered_query(**filters).count()

    def _sum_amount(self, *conditions) -> int:
        total = (
            self.db.query(func.coalesce(func.sum(self.model_class.amount), 0))
            .filter(*conditions)
            .scalar()
        )
        return int(total or 0)

    def get_total_amount_by_status(self) -> CashoutStatusTotals:
        """상태별 금액 합계"""
        rows = (
            self.db.query(
                self.model_class.status,
                func.coalesce(func.sum(self.model_class.amount), 0),
            )
            .group_by(self.model_class.status)
            .all()
        )
        totals: Dict[CashoutStatus, int] = {status: 0 for status in CashoutStatus}
        for status, amount in rows:
            totals[CashoutStatus(status)] = int(amount or 0)

        return CashoutStatusTotals(
            pending_amount=totals[CashoutStatus.PENDING],
            processing_amount=totals[CashoutStatus.PROCESSING],
            completed_amount=totals[CashoutStatus.COMPLETED],
            rejected_amount=totals[CashoutStatus.REJECTED],
        )

    def get_total_amount_by_user(self, user_id: int) -> int:
        """사용자의 완료된 출금 금액 합계"""
        return self._sum_amount(
            self.model_class.user == user_id,
            self.model_class.status == CashoutStatus.COMPLETED,
        )

    def get_amount_by_date_range(
        self,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        user_id: Optional[int] = None,
    ) -> int:
        """[start_time, end_time) 구간 완료 출금 금액 합계 (user_id 지정 시 해당 사용자만)"""
        conditions = [
            self.model_class.status == CashoutStatus.COMPLETED,
            self.model_class.created_at >= start_time,
        ]
        if end_time is not None:
            conditions.append(self.model_class.created_at < end_time)
        if user_id is not None:
            conditions.append(self.model_class.user == user_id)
        return self._sum_amount(*conditions)

    def get_cashout_count_by_user(self, user_id: int) -> int:
        return self.count({"user": user_id})

    def get_daily_stats(
        self, start_time: datetime, end_time: datetime
    ) -> List[DailyCashoutStats]:
        """일별 신청 통계 (날짜 오름차순)"""
        day = func.date(self.model_class.created_at)
        rows = (
            self.db.query(
                day.label("day"),
                func.coalesce(func.sum(self.model_class.amount), 0),
                func.coalesce(func.sum(self.model_class.points), 0),
                func.count(self.model_class.id),
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
            DailyCashoutStats(
                date=str(row[0]),
                total_amount=int(row[1] or 0),
                total_points=int(row[2] or 0),
                count=int(row[3] or 0),
            )
            for row in rows
        ]
