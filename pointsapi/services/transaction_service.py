"""
사용자 간 송금(Transaction) 엔진

pending --(송금자 비밀번호 확인)--> password --(수신자 수락)--> success / fail
pending / password --(수신자 거절)--> refuse

포인트는 password -> success 전이에서만 이동합니다.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.credentials import CredentialVerifier, PlainSecretVerifier
from pointsapi.core.exceptions import LedgerError
from pointsapi.core.state_machine import transaction_state_machine
from pointsapi.models.pointrak import PointrakChannel
from pointsapi.models.transaction import Transaction, TransactionStatus
from pointsapi.repositories.transaction_repository import TransactionRepository
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult
from pointsapi.schemas.pagination import Page, PaginationLimits, clamp_limit
from pointsapi.schemas.transaction import (
    TransactionResponse,
    TransferSettlementResponse,
    TransferTotalsResponse,
)
from pointsapi.services.base_service import LedgerServiceBase
from pointsapi.services.point_service import PointService
from pointsapi.utils.date_utils import Clock

logger = logging.getLogger(__name__)


class TransactionService(LedgerServiceBase):
    """2단계 송금 처리"""

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
        self.transaction_repo = TransactionRepository(
            db, sn_length=self.settings.TRANSACTION_SN_LENGTH
        )

    def _load(self, transaction_id: int) -> Transaction:
        transaction = self.transaction_repo.get_model(transaction_id)
        if transaction is None:
            raise LedgerError(
                LedgerErrorCode.NOT_FOUND, f"Transaction {transaction_id} not found"
            )
        return transaction

    def _transition(self, transaction: Transaction, new_status: TransactionStatus) -> None:
        """전이 테이블 확인 후 현재 상태를 조건으로 상태 변경"""
        current = TransactionStatus(transaction.status)
        if not transaction_state_machine.can_transition(current, new_status):
            raise LedgerError(
                LedgerErrorCode.INVALID_STATE,
                f"Cannot change transaction from {current.value} to {new_status.value}",
            )
        if not self.transaction_repo.transition(transaction.id, current, new_status):
            raise LedgerError(
                LedgerErrorCode.INVALID_STATE,
                f"Transaction {transaction.id} was changed concurrently",
            )

    def create(
        self, from_user: int, to_user: int, point: int, serial: int
    ) -> LedgerResult[TransactionResponse]:
        """송금 생성 (잔액 변화 없음, pending)"""
        try:
            self._require_positive(point, "point")
            with self.unit_of_work():
                if self.user_repo.get_balance(to_user) is None:
                    raise LedgerError(LedgerErrorCode.NOT_FOUND, f"User {to_user} not found")
                if self.user_repo.get_balance(from_user) is None:
                    raise LedgerError(LedgerErrorCode.NOT_FOUND, f"User {from_user} not found")

                transaction = self.transaction_repo.create_transaction(
                    from_user=from_user, to_user=to_user, point=point, serial=serial
                )
        except LedgerError as e:
            return self._fail(e, "create_transaction")

        logger.info(
            f"Transaction {transaction.sn} created: {from_user} -> {to_user} ({point} points)"
        )
        return LedgerResult.ok(transaction, message="Transaction created")

    def confirm_with_password(
        self, transaction_id: int, acting_user: int, supplied_password: str
    ) -> LedgerResult[TransactionResponse]:
        """송금자 결제 비밀번호 확인 (pending -> password)"""
        try:
            with self.unit_of_work():
                transaction = self._load(transaction_id)
                if transaction.from_user != acting_user:
                    raise LedgerError(
                        LedgerErrorCode.UNAUTHORIZED,
                        "Only the sender can confirm this transaction",
                    )
                if transaction.status != TransactionStatus.PENDING:
                    raise LedgerError(
                        LedgerErrorCode.INVALID_STATE,
                        f"Transaction is {TransactionStatus(transaction.status).value}, expected pending",
                    )

                sender = self.user_repo.get_model(acting_user)
                if sender is None or not self.verifier.verify_pay_password(
                    sender, supplied_password
                ):
                    raise LedgerError(
                        LedgerErrorCode.INVALID_CREDENTIAL, "Invalid payment password"
                    )

                self._transition(transaction, TransactionStatus.PASSWORD)
        except LedgerError as e:
            return self._fail(e, "confirm_with_password")

        logger.info(f"Transaction {transaction_id} confirmed by sender {acting_user}")
        return LedgerResult.ok(
            self.transaction_repo.get_by_id(transaction_id), message="Transaction confirmed"
        )

    def accept(
        self, transaction_id: int, acting_user: int
    ) -> LedgerResult[TransferSettlementResponse]:
        """수신자 수락 (password -> success / fail)

        송금자 행을 잠근 뒤 차감을 시도합니다. 잔액이 부족하면 fail 상태를 커밋하고
        INSUFFICIENT_BALANCE로 실패하며 잔액은 변하지 않습니다.
        """
        failure: Optional[LedgerError] = None

        try:
            with self.unit_of_work():
                transaction = self._load(transaction_id)
                if transaction.to_user != acting_user:
                    raise LedgerError(
                        LedgerErrorCode.UNAUTHORIZED,
                        "Only the receiver can accept this transaction",
                    )
                if transaction.status != TransactionStatus.PASSWORD:
                    raise LedgerError(
                        LedgerErrorCode.INVALID_STATE,
                        f"Transaction is {TransactionStatus(transaction.status).value}, expected password",
                    )

                from_user = transaction.from_user
                to_user = transaction.to_user
                point = transaction.point
                self.user_repo.lock_user(from_user)

                try:
                    debit = self.point_service.record_delta(
                        from_user,
                        -point,
                        PointrakChannel.TRANSFER_OUT,
                        detail=f"Transfer {transaction.sn} to user {to_user}",
                    )
                except LedgerError as e:
                    if e.code != LedgerErrorCode.INSUFFICIENT_BALANCE:
                        raise
                    # 잔액 변화 없이 fail 상태만 기록
                    self._transition(transaction, TransactionStatus.FAIL)
                    failure = e
                else:
                    credit = self.point_service.record_delta(
                        to_user,
                        point,
                        PointrakChannel.TRANSFER_IN,
                        detail=f"Transfer {transaction.sn} from user {from_user}",
                    )
                    self._transition(transaction, TransactionStatus.SUCCESS)
                    data = TransferSettlementResponse(
                        transaction=self.transaction_repo.get_by_id(transaction_id),
                        from_balance_after=debit.balance_after,
                        to_balance_after=credit.balance_after,
                    )
        except LedgerError as e:
            return self._fail(e, "accept")

        if failure is not None:
            return self._fail(failure, "accept")

        logger.info(
            f"Transaction {transaction_id} settled: {from_user} -> {to_user} ({point} points)"
        )
        return LedgerResult.ok(data, message="Transaction completed")

    def refuse(
        self, transaction_id: int, acting_user: int
    ) -> LedgerResult[TransactionResponse]:
        """수신자 거절 (pending / password -> refuse, 잔액 변화 없음)"""
        try:
            with self.unit_of_work():
                transaction = self._load(transaction_id)
                if transaction.to_user != acting_user:
                    raise LedgerError(
                        LedgerErrorCode.UNAUTHORIZED,
                        "Only the receiver can refuse this transaction",
                    )
                self._transition(transaction, TransactionStatus.REFUSE)
        except LedgerError as e:
            return self._fail(e, "refuse")

        logger.info(f"Transaction {transaction_id} refused by receiver {acting_user}")
        return LedgerResult.ok(
            self.transaction_repo.get_by_id(transaction_id), message="Transaction refused"
        )

    def get_transaction(self, transaction_id: int) -> Optional[TransactionResponse]:
        return self.transaction_repo.get_by_id(transaction_id)

    def get_user_transactions(
        self, user_id: int, limit: int = 10, offset: int = 0
    ) -> Page[TransactionResponse]:
        """보낸/받은 송금 내역 (최신순)"""
        limit = clamp_limit(limit, PaginationLimits.TRANSACTION_HISTORY)
        offset = max(offset or 0, 0)

        items = self.transaction_repo.get_user_transactions(user_id, limit=limit, offset=offset)
        total_count = self.transaction_repo.count_user_transactions(user_id)
        return Page[TransactionResponse](
            items=items,
            total_count=total_count,
            has_next=offset + limit < total_count,
            limit=limit,
            offset=offset,
        )

    def get_pending_transactions(self, user_id: int) -> List[TransactionResponse]:
        """송금자가 비밀번호 확인을 기다리는 송금 목록"""
        return self.transaction_repo.find_pending_by_sender(user_id)

    def get_transfer_totals(self, user_id: int) -> TransferTotalsResponse:
        """성공한 송금 기준 보낸/받은 포인트 합계"""
        return self.transaction_repo.get_total_amount_by_user(user_id)
