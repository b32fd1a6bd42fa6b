"""
출금(Cashout) 엔진

신청 시 포인트를 즉시 차감(예약)하고, pending 상태에서 거절/취소될 때만 환불합니다.
processing 이후에는 completed로만 진행할 수 있습니다.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.exceptions import LedgerError, ValidationError
from pointsapi.core.state_machine import cashout_state_machine
from pointsapi.models.cashout import Cashout, CashoutMethod, CashoutStatus
from pointsapi.models.pointrak import PointrakChannel
from pointsapi.repositories.cashout_repository import CashoutRepository
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.schemas.cashout import (
    CashoutResponse,
    CashoutStatusTotals,
    CashoutUserStats,
    DailyCashoutStats,
)
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult
from pointsapi.schemas.pagination import Page, PaginationLimits, clamp_limit
from pointsapi.services.base_service import LedgerServiceBase
from pointsapi.services.point_service import PointService
from pointsapi.utils.date_utils import Clock, date_range_bounds

logger = logging.getLogger(__name__)

USER_CANCELLED_NOTE = "user cancelled"

# 관리자가 지정할 수 있는 목표 상태
ADMIN_TARGET_STATUSES = {
    CashoutStatus.PROCESSING,
    CashoutStatus.COMPLETED,
    CashoutStatus.REJECTED,
}


class CashoutService(LedgerServiceBase):
    """출금 신청/처리/취소 및 통계"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        point_service: Optional[PointService] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings, clock)
        self.point_service = point_service or PointService(db, self.settings, self.clock)
        self.user_repo = UserRepository(db)
        self.cashout_repo = CashoutRepository(db)

    def _load(self, cashout_id: int) -> Cashout:
        cashout = self.cashout_repo.get_model(cashout_id)
        if cashout is None:
            raise LedgerError(LedgerErrorCode.NOT_FOUND, f"Cashout {cashout_id} not found")
        return cashout

    def _transition(self, cashout: Cashout, new_status: CashoutStatus, **values) -> CashoutStatus:
        """전이 테이블 확인 후 현재 상태를 조건으로 상태 변경, 이전 상태 반환"""
        current = CashoutStatus(cashout.status)
        if not cashout_state_machine.can_transition(current, new_status):
            raise LedgerError(
                LedgerErrorCode.INVALID_STATE,
                f"Cannot change cashout from {current.value} to {new_status.value}",
            )
        if not self.cashout_repo.transition(cashout.id, current, new_status, **values):
            raise LedgerError(
                LedgerErrorCode.INVALID_STATE,
                f"Cashout {cashout.id} was changed concurrently",
            )
        return current

    @staticmethod
    def _coerce_method(method: Union[CashoutMethod, str]) -> CashoutMethod:
        try:
            return CashoutMethod(method)
        except ValueError:
            raise LedgerError(
                LedgerErrorCode.INVALID_ARGUMENT, f"Unsupported cashout method: {method}"
            )

    def _refund(self, cashout: Cashout, detail: str) -> None:
        self.point_service.record_delta(
            cashout.user, cashout.points, PointrakChannel.CASHOUT_REFUND, detail=detail
        )

    def request(
        self,
        user_id: int,
        points: int,
        method: Union[CashoutMethod, str],
        account: str,
        note: Optional[str] = None,
    ) -> LedgerResult[CashoutResponse]:
        """출금 신청

        Args:
            user_id: 신청자 ID
            points: 출금할 포인트 (즉시 차감)
            method: alipay / wechat / bank
            account: 지급 계좌
            note: 신청 메모
        """
        rate = self.settings.CASHOUT_RATE
        try:
            self._require_positive(points, "points")
            amount = points // rate
            if amount < self.settings.CASHOUT_MIN_AMOUNT:
                raise LedgerError(
                    LedgerErrorCode.INVALID_AMOUNT,
                    f"Cashout amount must be at least {self.settings.CASHOUT_MIN_AMOUNT} "
                    f"({rate} points per unit)",
                )
            method = self._coerce_method(method)

            with self.unit_of_work():
                self.point_service.record_delta(
                    user_id,
                    -points,
                    PointrakChannel.CASHOUT_FREEZE,
                    detail=f"Cashout request via {method.value}",
                )
                cashout = self.cashout_repo.create_cashout(
                    user_id=user_id,
                    points=points,
                    amount=amount,
                    rate=rate,
                    method=method,
                    account=account,
                    note=note,
                )
        except LedgerError as e:
            return self._fail(e, "request_cashout")

        logger.info(
            f"User {user_id} requested cashout {cashout.id}: {points} points -> {amount} ({method.value})"
        )
        return LedgerResult.ok(cashout, message="Cashout requested")

    def admin_set_status(
        self,
        cashout_id: int,
        new_status: Union[CashoutStatus, str],
        admin_note: Optional[str] = None,
        acting_user: Optional[int] = None,
    ) -> LedgerResult[CashoutResponse]:
        """관리자 상태 변경

        pending -> rejected 인 경우에만 포인트를 환불합니다.
        processing / completed 로 변경 시 processed_at을 기록합니다.
        admin_note는 값이 주어진 경우에만 덮어씁니다.
        """
        try:
            if acting_user is None or not self.user_repo.is_admin(acting_user):
                raise LedgerError(
                    LedgerErrorCode.UNAUTHORIZED,
                    "Only administrators can change cashout status",
                )
            if new_status not in ADMIN_TARGET_STATUSES:
                raise LedgerError(
                    LedgerErrorCode.INVALID_STATE,
                    f"Cannot set cashout status to {new_status}",
                )
            new_status = CashoutStatus(new_status)

            with self.unit_of_work():
                cashout = self._load(cashout_id)

                values = {}
                if admin_note is not None:
                    values["admin_note"] = admin_note
                if new_status in (CashoutStatus.PROCESSING, CashoutStatus.COMPLETED):
                    values["processed_at"] = self.clock()

                previous = self._transition(cashout, new_status, **values)
                if previous == CashoutStatus.PENDING and new_status == CashoutStatus.REJECTED:
                    self._refund(cashout, detail=f"Cashout {cashout_id} rejected")
        except LedgerError as e:
            return self._fail(e, "admin_set_status")

        logger.info(
            f"Admin {acting_user} changed cashout {cashout_id}: {previous.value} -> {new_status.value}"
        )
        return LedgerResult.ok(
            self.cashout_repo.get_by_id(cashout_id), message="Cashout status updated"
        )

    def cancel(self, cashout_id: int, requesting_user: int) -> LedgerResult[CashoutResponse]:
        """신청자 취소 (pending에서만, 포인트 환불)"""
        try:
            with self.unit_of_work():
                cashout = self._load(cashout_id)
                if cashout.user != requesting_user:
                    raise LedgerError(
                        LedgerErrorCode.UNAUTHORIZED,
                        "You can only cancel your own cashout",
                    )
                if cashout.status != CashoutStatus.PENDING:
                    raise LedgerError(
                        LedgerErrorCode.INVALID_STATE,
                        "Only pending cashouts can be cancelled",
                    )

                self._transition(
                    cashout, CashoutStatus.REJECTED, admin_note=USER_CANCELLED_NOTE
                )
                self._refund(cashout, detail=f"Cashout {cashout_id} cancelled")
        except LedgerError as e:
            return self._fail(e, "cancel_cashout")

        logger.info(f"User {requesting_user} cancelled cashout {cashout_id}")
        return LedgerResult.ok(
            self.cashout_repo.get_by_id(cashout_id), message="Cashout cancelled"
        )

    def get_cashout(self, cashout_id: int) -> Optional[CashoutResponse]:
        return self.cashout_repo.get_by_id(cashout_id)

    def get_user_cashouts(
        self, user_id: int, limit: int = 10, offset: int = 0
    ) -> Page[CashoutResponse]:
        """사용자 출금 내역 (최신순)"""
        return self.list_cashouts(limit=limit, offset=offset, user_id=user_id)

    def list_cashouts(
        self,
        limit: int = 10,
        offset: int = 0,
        user_id: Optional[int] = None,
        status: Optional[CashoutStatus] = None,
        method: Optional[CashoutMethod] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> Page[CashoutResponse]:
        """조건별 출금 목록 (관리자 조회용, 최신순)"""
        limit = clamp_limit(limit, PaginationLimits.CASHOUT_HISTORY)
        offset = max(offset or 0, 0)

        filters = {"user_id": user_id, "status": status, "method": method}
        if start_date is not None and end_date is not None:
            filters["start_time"], filters["end_time"] = self._bounds(start_date, end_date)

        items = self.cashout_repo.list_cashouts(limit=limit, offset=offset, **filters)
        total_count = self.cashout_repo.count_cashouts(**filters)
        return Page[CashoutResponse](
            items=items,
            total_count=total_count,
            has_next=offset + limit < total_count,
            limit=limit,
            offset=offset,
        )

    @staticmethod
    def _bounds(start_date: date, end_date: date):
        if start_date > end_date:
            raise ValidationError("Start date must be before or equal to end date")
        return date_range_bounds(start_date, end_date)

    def get_total_amount_by_status(self) -> CashoutStatusTotals:
        return self.cashout_repo.get_total_amount_by_status()

    def get_total_amount_by_user(self, user_id: int) -> int:
        """완료된 출금 금액 합계"""
        return self.cashout_repo.get_total_amount_by_user(user_id)

    def get_amount_by_date_range(
        self, start_date: date, end_date: date, user_id: Optional[int] = None
    ) -> int:
        start_time, end_time = self._bounds(start_date, end_date)
        return self.cashout_repo.get_amount_by_date_range(start_time, end_time, user_id=user_id)

    def get_cashout_count_by_user(self, user_id: int) -> int:
        return self.cashout_repo.get_cashout_count_by_user(user_id)

    def get_daily_stats(self, start_date: date, end_date: date) -> List[DailyCashoutStats]:
        start_time, end_time = self._bounds(start_date, end_date)
        return self.cashout_repo.get_daily_stats(start_time, end_time)

    def get_admin_stats(self, acting_user: int) -> LedgerResult[CashoutStatusTotals]:
        """관리자 전체 통계 (상태별 금액)"""
        if not self.user_repo.is_admin(acting_user):
            return self._fail(
                LedgerError(
                    LedgerErrorCode.UNAUTHORIZED, "Only administrators can view global stats"
                ),
                "get_admin_stats",
            )
        return LedgerResult.ok(self.get_total_amount_by_status())

    def get_user_stats(self, user_id: int) -> CashoutUserStats:
        """사용자 통계 (완료 금액 합계, 신청 건수, 최근 N일 완료 금액)"""
        since = self.clock() - timedelta(days=self.settings.CASHOUT_RECENT_DAYS)
        return CashoutUserStats(
            user_id=user_id,
            total_amount=self.cashout_repo.get_total_amount_by_user(user_id),
            total_count=self.cashout_repo.get_cashout_count_by_user(user_id),
            recent_amount=self.cashout_repo.get_amount_by_date_range(
                since, user_id=user_id
            ),
        )
