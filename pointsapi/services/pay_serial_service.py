"""
교환 코드(PaySerial) 엔진

발행: 발행자 포인트를 차감하고 active 코드를 생성 (코드가 포인트를 보관)
사용: 비밀번호 확인 후 active -> used 조건부 UPDATE, 승자만 포인트 적립
만료: 늦은 사용 시도 또는 정리 작업에서 active -> expired
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.credentials import CredentialVerifier, PlainSecretVerifier
from pointsapi.core.exceptions import LedgerError
from pointsapi.core.state_machine import pay_serial_state_machine
from pointsapi.models.pay_serial import PaySerialStatus
from pointsapi.models.pointrak import PointrakChannel
from pointsapi.repositories.pay_serial_repository import PaySerialRepository
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult
from pointsapi.schemas.pagination import Page, PaginationLimits, clamp_limit
from pointsapi.schemas.pay_serial import (
    PaySerialRedeemResponse,
    PaySerialResponse,
    PaySerialStatsResponse,
    PaySerialSweepResponse,
)
from pointsapi.services.base_service import LedgerServiceBase
from pointsapi.services.point_service import PointService
from pointsapi.utils.date_utils import Clock, as_utc

logger = logging.getLogger(__name__)

# 코드 없음/비밀번호 불일치는 구분할 수 없도록 같은 메시지를 사용
INVALID_SERIAL_MESSAGE = "Invalid serial number or password"


class PaySerialService(LedgerServiceBase):
    """교환 코드 발행/사용/만료 처리"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        point_service: Optional[PointService] = None,
        verifier: Optional[CredentialVerifier] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, settings, clock)
        self.point_service = point_service or PointService(db, self.settings, self.clock)
        self.verifier = verifier or PlainSecretVerifier()
        self.user_repo = UserRepository(db)
        self.pay_serial_repo = PaySerialRepository(
            db, sn_length=self.settings.PAY_SERIAL_SN_LENGTH
        )

    def issue(
        self,
        issuer_id: int,
        point: int,
        password: str,
        valid_for_hours: Optional[int] = None,
    ) -> LedgerResult[PaySerialResponse]:
        """교환 코드 발행

        Args:
            issuer_id: 발행자 ID
            point: 코드에 담을 포인트 (발행자 잔액에서 즉시 차감)
            password: 사용 시 필요한 비밀번호
            valid_for_hours: 유효 시간 (기본 24시간, 1 ~ 8760)
        """
        hours = (
            valid_for_hours
            if valid_for_hours is not None
            else self.settings.PAY_SERIAL_DEFAULT_HOURS
        )

        try:
            self._require_positive(point, "point")
            if not 1 <= hours <= self.settings.PAY_SERIAL_MAX_HOURS:
                raise LedgerError(
                    LedgerErrorCode.INVALID_AMOUNT,
                    f"valid_for_hours must be between 1 and {self.settings.PAY_SERIAL_MAX_HOURS}",
                )
            if not password:
                raise LedgerError(
                    LedgerErrorCode.INVALID_CREDENTIAL, "Serial password is required"
                )

            with self.unit_of_work():
                self.point_service.record_delta(
                    issuer_id,
                    -point,
                    PointrakChannel.PAYSERIAL_ISSUE,
                    detail=f"Pay serial issued ({point} points, {hours}h)",
                )
                serial = self.pay_serial_repo.create_serial(
                    issuer_id=issuer_id,
                    point=point,
                    password=password,
                    expired_at=self.clock() + timedelta(hours=hours),
                )
        except LedgerError as e:
            return self._fail(e, "issue")

        logger.info(f"User {issuer_id} issued pay serial {serial.sn} for {point} points")
        return LedgerResult.ok(serial, message="Pay serial issued")

    def redeem(
        self, sn: str, password: str, redeemer_id: int
    ) -> LedgerResult[PaySerialRedeemResponse]:
        """교환 코드 사용

        비밀번호가 맞는 경우에만 사용 완료/만료 여부를 구분하여 알려줍니다.
        만료가 확인된 코드는 expired로 변경되어 커밋된 뒤 EXPIRED로 실패합니다.
        """
        failure: Optional[LedgerError] = None

        try:
            with self.unit_of_work():
                if self.user_repo.get_balance(redeemer_id) is None:
                    raise LedgerError(
                        LedgerErrorCode.NOT_FOUND, f"User {redeemer_id} not found"
                    )

                serial = self.pay_serial_repo.get_model_by_sn(sn)
                if serial is None or not self.verifier.matches(serial.password, password):
                    raise LedgerError(
                        LedgerErrorCode.INVALID_CREDENTIAL, INVALID_SERIAL_MESSAGE
                    )

                self._reject_terminal(serial.status)
                now = self.clock()

                if as_utc(serial.expired_at) <= now:
                    self.pay_serial_repo.mark_expired(serial.id)
                    failure = LedgerError(LedgerErrorCode.EXPIRED, "Pay serial has expired")
                else:
                    if not self.pay_serial_repo.consume(serial.id, redeemer_id, now):
                        # 동시 사용 경쟁에서 패배: 현재 상태로 사유 판단
                        current = self.pay_serial_repo.get_model(serial.id)
                        self._reject_terminal(current.status)
                        if as_utc(current.expired_at) <= now:
                            raise LedgerError(LedgerErrorCode.EXPIRED, "Pay serial has expired")
                        raise LedgerError(
                            LedgerErrorCode.ALREADY_CONSUMED, "Pay serial already used"
                        )

                    entry = self.point_service.record_delta(
                        redeemer_id,
                        serial.point,
                        PointrakChannel.PAYSERIAL_REDEEM,
                        detail=f"Pay serial {serial.sn} redeemed",
                    )
                    data = PaySerialRedeemResponse(
                        sn=serial.sn,
                        point=serial.point,
                        redeemer=redeemer_id,
                        balance_after=entry.balance_after,
                    )
        except LedgerError as e:
            return self._fail(e, "redeem")

        if failure is not None:
            return self._fail(failure, "redeem")

        logger.info(f"User {redeemer_id} redeemed pay serial {data.sn} for {data.point} points")
        return LedgerResult.ok(data, message="Pay serial redeemed")

    @staticmethod
    def _reject_terminal(status: PaySerialStatus) -> None:
        """종료 상태(used/expired) 코드는 사용할 수 없음"""
        if not pay_serial_state_machine.is_terminal_state(status):
            return
        if status == PaySerialStatus.USED:
            raise LedgerError(LedgerErrorCode.ALREADY_CONSUMED, "Pay serial already used")
        raise LedgerError(LedgerErrorCode.EXPIRED, "Pay serial has expired")

    def expire_overdue(self, now: Optional[datetime] = None) -> PaySerialSweepResponse:
        """만료 시각이 지난 active 코드를 모두 expired로 변경

        PAY_SERIAL_REFUND_ON_EXPIRY가 켜져 있으면 보관 중이던 포인트를 발행자에게 반환합니다.
        """
        now = now or self.clock()
        refund = self.settings.PAY_SERIAL_REFUND_ON_EXPIRY
        expired_count = 0
        refunded_points = 0

        with self.unit_of_work():
            for serial in self.pay_serial_repo.find_overdue(now):
                if not self.pay_serial_repo.mark_expired(serial.id):
                    continue
                expired_count += 1

                if refund:
                    self.point_service.record_delta(
                        serial.user,
                        serial.point,
                        PointrakChannel.PAYSERIAL_REFUND,
                        detail=f"Pay serial {serial.sn} expired",
                    )
                    refunded_points += serial.point

        logger.info(
            f"Expired {expired_count} overdue pay serials (refunded {refunded_points} points)"
        )
        return PaySerialSweepResponse(
            expired_count=expired_count, refunded_points=refunded_points
        )

    def get_user_serials(
        self, user_id: int, limit: int = 10, offset: int = 0
    ) -> Page[PaySerialResponse]:
        """발행 내역 조회 (비밀번호 제외, 최신순)"""
        limit = clamp_limit(limit, PaginationLimits.PAY_SERIAL_HISTORY)
        offset = max(offset or 0, 0)

        items = self.pay_serial_repo.get_user_serials(user_id, limit=limit, offset=offset)
        total_count = self.pay_serial_repo.count_by_issuer(user_id)
        return Page[PaySerialResponse](
            items=items,
            total_count=total_count,
            has_next=offset + limit < total_count,
            limit=limit,
            offset=offset,
        )

    def get_serial_by_sn(self, sn: str) -> Optional[PaySerialResponse]:
        return self.pay_serial_repo.get_by_sn(sn)

    def get_serial_stats(self, user_id: int) -> PaySerialStatsResponse:
        issued_count, total_points = self.pay_serial_repo.get_issued_totals(user_id)
        return PaySerialStatsResponse(
            user_id=user_id, issued_count=issued_count, total_points=total_points
        )
