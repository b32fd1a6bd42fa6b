from typing import List, Optional
from sqlalchemy.orm import Session
from datetime import date

from pointsapi.config import Settings
from pointsapi.core.exceptions import LedgerError, NotFoundError, ValidationError
from pointsapi.models.pointrak import PointrakChannel
from pointsapi.repositories.pointrak_repository import PointrakRepository
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult
from pointsapi.schemas.pagination import PaginationLimits, clamp_limit
from pointsapi.schemas.points import (
    DailyPointrakStats,
    PointrakChannelTotal,
    PointrakEntry,
    PointrakHistoryResponse,
    PointrakOwnerStats,
    PointsBalanceResponse,
    PointsIntegrityCheckResponse,
    PointsTransactionResponse,
)
from pointsapi.services.base_service import LedgerServiceBase
from pointsapi.utils.date_utils import Clock, date_range_bounds
import logging

logger = logging.getLogger(__name__)


class PointService(LedgerServiceBase):
    """잔액 저장소와 포인트 원장을 다루는 서비스

    다른 엔진(교환 코드, 송금, 출금)은 자신의 unit of work 안에서 record_delta를 호출하여
    잔액 변경과 원장 기록을 같은 트랜잭션에 묶습니다.
    """

    def __init__(
        self,
        db: Session,
        settings: Settings,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings, clock)
        self.user_repo = UserRepository(db)
        self.pointrak_repo = PointrakRepository(
            db, sn_length=self.settings.POINTRAK_SN_LENGTH
        )

    def record_delta(
        self,
        user_id: int,
        delta: int,
        channel: PointrakChannel,
        detail: str = "",
    ) -> PointrakEntry:
        """잔액 델타 적용 + 원장 1건 기록 (커밋하지 않음)

        Args:
            user_id: 사용자 ID
            delta: 포인트 변화량 (양수=적립, 음수=차감, 0 불가)
            channel: 변동 경로
            detail: 상세 내용

        Returns:
            PointrakEntry: 기록된 원장 항목 (points == delta, balance_after == 적용 후 잔액)

        Raises:
            LedgerError: INVALID_AMOUNT / NOT_FOUND / INSUFFICIENT_BALANCE
        """
        if delta == 0:
            raise LedgerError(
                LedgerErrorCode.INVALID_AMOUNT, "Point delta must not be zero"
            )

        new_balance = self.user_repo.apply_delta(user_id, delta)
        if new_balance is None:
            current_balance = self.user_repo.get_balance(user_id)
            if current_balance is None:
                raise LedgerError(LedgerErrorCode.NOT_FOUND, f"User {user_id} not found")
            raise LedgerError(
                LedgerErrorCode.INSUFFICIENT_BALANCE,
                f"Insufficient balance. Required: {abs(delta)}, Available: {current_balance}",
            )

        return self.pointrak_repo.append(
            owner=user_id,
            points=delta,
            channel=channel,
            balance_after=new_balance,
            detail=detail,
        )

    def apply_delta(
        self,
        user_id: int,
        delta: int,
        channel: PointrakChannel,
        detail: str = "",
    ) -> LedgerResult[PointsTransactionResponse]:
        """잔액 델타 적용 (단독 트랜잭션)"""
        try:
            with self.unit_of_work():
                entry = self.record_delta(user_id, delta, channel, detail)
        except LedgerError as e:
            return self._fail(e, "apply_delta")

        logger.info(
            f"Applied {delta} points for user {user_id} via {channel.value} (balance: {entry.balance_after})"
        )
        return LedgerResult.ok(
            PointsTransactionResponse(
                user_id=user_id,
                pointrak_id=entry.id,
                pointrak_sn=entry.sn,
                delta_points=delta,
                balance_after=entry.balance_after,
                channel=channel,
            ),
            message="Transaction completed successfully",
        )

    def add_points(
        self,
        user_id: int,
        amount: int,
        channel: PointrakChannel = PointrakChannel.JUST_REWARD,
        detail: str = "",
    ) -> LedgerResult[PointsTransactionResponse]:
        """포인트 적립"""
        if amount is None or amount <= 0:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_AMOUNT, "Amount must be a positive integer"
            )
        return self.apply_delta(user_id, amount, channel, detail)

    def deduct_points(
        self,
        user_id: int,
        amount: int,
        channel: PointrakChannel = PointrakChannel.SHOPPING,
        detail: str = "",
    ) -> LedgerResult[PointsTransactionResponse]:
        """포인트 차감 (잔액 부족 시 실패, 0으로 보정하지 않음)"""
        if amount is None or amount <= 0:
            return LedgerResult.fail(
                LedgerErrorCode.INVALID_AMOUNT, "Amount must be a positive integer"
            )
        return self.apply_delta(user_id, -amount, channel, detail)

    def admin_adjust_points(
        self, admin_id: int, user_id: int, adjustment: int, reason: str
    ) -> LedgerResult[PointsTransactionResponse]:
        """관리자 포인트 조정

        Args:
            admin_id: 관리자 ID
            user_id: 대상 사용자 ID
            adjustment: 조정량 (음수면 차감)
            reason: 조정 사유
        """
        if not self.user_repo.is_admin(admin_id):
            return self._fail(
                LedgerError(
                    LedgerErrorCode.UNAUTHORIZED, "Only administrators can adjust points"
                ),
                "admin_adjust_points",
            )

        result = self.apply_delta(
            user_id,
            adjustment,
            PointrakChannel.ADMIN_ADJUST,
            detail=f"Admin adjustment by {admin_id}: {reason}",
        )
        if result.success:
            action = "Added" if adjustment > 0 else "Deducted"
            logger.info(
                f"{action} {abs(adjustment)} points for user {user_id} by admin {admin_id}"
            )
        return result

    def get_user_balance(self, user_id: int) -> PointsBalanceResponse:
        """사용자 포인트 잔액 조회"""
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        return PointsBalanceResponse(
            user_id=user.id, balance=user.points, goldpoints=user.goldpoints
        )

    def get_user_pointraks(
        self, user_id: int, limit: int = 50, offset: int = 0
    ) -> PointrakHistoryResponse:
        """사용자 포인트 원장 조회 (최신순)

        Args:
            user_id: 사용자 ID
            limit: 페이지 크기 (최대 100)
            offset: 오프셋
        """
        limit = clamp_limit(limit, PaginationLimits.POINTRAK_HISTORY)
        offset = max(offset or 0, 0)

        balance = self.user_repo.get_balance(user_id)
        if balance is None:
            raise NotFoundError(f"User {user_id} not found")

        entries = self.pointrak_repo.get_owner_entries(user_id, limit=limit, offset=offset)
        total_count = self.pointrak_repo.count_by_owner(user_id)

        logger.info(f"Retrieved pointraks for user {user_id}: {total_count} entries")
        return PointrakHistoryResponse(
            balance=balance,
            entries=entries,
            total_count=total_count,
            has_next=offset + limit < total_count,
        )

    def get_pointraks_by_date_range(
        self, user_id: int, start_date: date, end_date: date
    ) -> List[PointrakEntry]:
        """날짜 범위별 원장 조회 (양 끝 날짜 포함)"""
        if start_date > end_date:
            raise ValidationError("Start date must be before or equal to end date")

        start_time, end_time = date_range_bounds(start_date, end_date)
        return self.pointrak_repo.get_entries_by_date_range(user_id, start_time, end_time)

    def get_total_points_by_owner(
        self,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PointrakOwnerStats:
        start_time = end_time = None
        if start_date is not None and end_date is not None:
            if start_date > end_date:
                raise ValidationError("Start date must be before or equal to end date")
            start_time, end_time = date_range_bounds(start_date, end_date)
        return self.pointrak_repo.get_total_points_by_owner(user_id, start_time, end_time)

    def get_total_points_by_channel(
        self, channel: PointrakChannel, user_id: Optional[int] = None
    ) -> PointrakChannelTotal:
        return self.pointrak_repo.get_total_points_by_channel(channel, owner=user_id)

    def get_daily_stats(self, start_date: date, end_date: date) -> List[DailyPointrakStats]:
        """일별 원장 통계"""
        if start_date > end_date:
            raise ValidationError("Start date must be before or equal to end date")
        start_time, end_time = date_range_bounds(start_date, end_date)
        return self.pointrak_repo.get_daily_stats(start_time, end_time)

    def verify_user_integrity(self, user_id: int) -> PointsIntegrityCheckResponse:
        """사용자별 포인트 정합성 검증"""
        integrity_result = self.pointrak_repo.verify_integrity_for_user(user_id)

        if integrity_result.status == "MISMATCH":
            logger.warning(f"Points integrity mismatch detected for user {user_id}")
        else:
            logger.info(f"Points integrity verified for user {user_id}")

        return integrity_result

    def verify_global_integrity(self) -> PointsIntegrityCheckResponse:
        """전체 포인트 정합성 검증"""
        integrity_result = self.pointrak_repo.verify_global_integrity()

        if integrity_result.status == "MISMATCH":
            logger.warning("Global points integrity mismatch detected")
        else:
            logger.info("Global points integrity verified")

        return integrity_result

    def can_afford(self, user_id: int, amount: int) -> bool:
        """사용자가 특정 금액을 지불할 수 있는지 확인 (참고용, 실제 차감 시 다시 검사됨)"""
        current_balance = self.user_repo.get_balance(user_id)
        return current_balance is not None and current_balance >= amount
