import pytest
from datetime import timedelta

from pointsapi.models import Cashout, CashoutMethod, CashoutStatus, Pointrak, PointrakChannel, UserRole
from pointsapi.schemas.common import LedgerErrorCode
from pointsapi.services.cashout_service import USER_CANCELLED_NOTE, CashoutService
from pointsapi.utils.date_utils import as_utc, utc_now


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


@pytest.fixture
def requester(make_user):
    return make_user(points=1000)


@pytest.fixture
def pending(cashout_service, requester):
    """500포인트 출금 신청 (rate 100 -> amount 5)"""
    result = cashout_service.request(requester, 500, CashoutMethod.ALIPAY, "alipay:me")
    assert result.success is True
    return result.data


def _refunds(db, user_id):
    return (
        db.query(Pointrak)
        .filter(Pointrak.owner == user_id, Pointrak.channel == PointrakChannel.CASHOUT_REFUND)
        .all()
    )


class TestRequest:
    """출금 신청 테스트"""

    def test_request_freezes_points(self, db, pending, requester, balance_of):
        # Then
        assert pending.status == CashoutStatus.PENDING
        assert pending.amount == 5
        assert pending.rate == 100
        assert pending.points == 500
        assert pending.note is None
        assert pending.processed_at is None
        assert balance_of(requester) == 500

        entry = db.query(Pointrak).filter(Pointrak.owner == requester).one()
        assert entry.points == -500
        assert entry.channel == PointrakChannel.CASHOUT_FREEZE

    def test_amount_is_floored(self, cashout_service, requester):
        result = cashout_service.request(requester, 250, "bank", "bank:123", note="rent")

        assert result.data.amount == 2
        assert result.data.method == CashoutMethod.BANK
        assert result.data.note == "rent"

    def test_below_minimum_amount(self, db, cashout_service, requester, balance_of):
        result = cashout_service.request(requester, 99, CashoutMethod.WECHAT, "wx")

        assert result.error_code == LedgerErrorCode.INVALID_AMOUNT
        assert balance_of(requester) == 1000
        assert db.query(Cashout).count() == 0

    def test_insufficient_balance(self, db, cashout_service, requester, balance_of):
        result = cashout_service.request(requester, 1001, CashoutMethod.WECHAT, "wx")

        assert result.error_code == LedgerErrorCode.INSUFFICIENT_BALANCE
        assert balance_of(requester) == 1000
        assert db.query(Cashout).count() == 0

    def test_rate_is_taken_from_settings(self, db, point_service, test_settings, clock, requester):
        test_settings.CASHOUT_RATE = 10
        service = CashoutService(db, point_service=point_service, settings=test_settings, clock=clock)

        result = service.request(requester, 55, CashoutMethod.ALIPAY, "a")

        assert result.data.amount == 5
        assert result.data.rate == 10

    def test_unsupported_method(self, db, cashout_service, requester, balance_of):
        result = cashout_service.request(requester, 500, "paypal", "x")

        assert result.success is False
        assert result.error_code == LedgerErrorCode.INVALID_ARGUMENT
        assert "paypal" in result.message
        assert balance_of(requester) == 1000
        assert db.query(Cashout).count() == 0


class TestAdminSetStatus:
    """관리자 상태 변경 테스트"""

    def test_reject_pending_refunds(self, db, cashout_service, pending, requester, admin, balance_of):
        # When
        result = cashout_service.admin_set_status(
            pending.id, CashoutStatus.REJECTED, admin_note="bad account", acting_user=admin
        )

        # Then
        assert result.success is True
        assert result.data.status == CashoutStatus.REJECTED
        assert result.data.admin_note == "bad account"
        assert balance_of(requester) == 1000
        refunds = _refunds(db, requester)
        assert len(refunds) == 1
        assert refunds[0].points == 500

    def test_processing_then_completed(self, cashout_service, pending, requester, admin, balance_of, clock):
        # When
        processing = cashout_service.admin_set_status(
            pending.id, CashoutStatus.PROCESSING, admin_note="paying", acting_user=admin
        )
        clock.advance(minutes=5)
        completed = cashout_service.admin_set_status(
            pending.id, "completed", acting_user=admin
        )

        # Then
        assert processing.data.status == CashoutStatus.PROCESSING
        assert completed.data.status == CashoutStatus.COMPLETED
        assert as_utc(completed.data.processed_at) == clock.now
        # admin_note는 새 값이 없으면 유지
        assert completed.data.admin_note == "paying"
        assert balance_of(requester) == 500

    def test_processing_cannot_be_rejected(self, db, cashout_service, pending, requester, admin, balance_of):
        """processing 이후에는 거절(환불) 경로가 없음"""
        cashout_service.admin_set_status(pending.id, CashoutStatus.PROCESSING, acting_user=admin)

        result = cashout_service.admin_set_status(
            pending.id, CashoutStatus.REJECTED, acting_user=admin
        )

        assert result.error_code == LedgerErrorCode.INVALID_STATE
        assert balance_of(requester) == 500
        assert _refunds(db, requester) == []

    @pytest.mark.parametrize("terminal", [CashoutStatus.COMPLETED, CashoutStatus.REJECTED])
    def test_terminal_states_reject_changes(
        self, db, cashout_service, pending, requester, admin, balance_of, terminal
    ):
        # Given
        cashout_service.admin_set_status(pending.id, terminal, acting_user=admin)
        balance = balance_of(requester)

        # When / Then
        for target in (CashoutStatus.PROCESSING, CashoutStatus.COMPLETED, CashoutStatus.REJECTED):
            result = cashout_service.admin_set_status(pending.id, target, acting_user=admin)
            assert result.error_code == LedgerErrorCode.INVALID_STATE

        assert balance_of(requester) == balance
        assert len(_refunds(db, requester)) == (1 if terminal == CashoutStatus.REJECTED else 0)

    def test_requires_admin(self, cashout_service, pending, requester):
        assert (
            cashout_service.admin_set_status(pending.id, CashoutStatus.COMPLETED, acting_user=requester).error_code
            == LedgerErrorCode.UNAUTHORIZED
        )
        assert (
            cashout_service.admin_set_status(pending.id, CashoutStatus.COMPLETED).error_code
            == LedgerErrorCode.UNAUTHORIZED
        )

    def test_pending_is_not_a_target(self, cashout_service, pending, admin):
        result = cashout_service.admin_set_status(pending.id, CashoutStatus.PENDING, acting_user=admin)

        assert result.error_code == LedgerErrorCode.INVALID_STATE

    def test_unknown_cashout(self, cashout_service, admin):
        result = cashout_service.admin_set_status(999, CashoutStatus.COMPLETED, acting_user=admin)

        assert result.error_code == LedgerErrorCode.NOT_FOUND


class TestCancel:
    """신청자 취소 테스트"""

    def test_cancel_refunds(self, db, cashout_service, pending, requester, balance_of):
        result = cashout_service.cancel(pending.id, requester)

        assert result.success is True
        assert result.data.status == CashoutStatus.REJECTED
        assert result.data.admin_note == USER_CANCELLED_NOTE
        assert balance_of(requester) == 1000
        assert len(_refunds(db, requester)) == 1

    def test_only_requester_can_cancel(self, cashout_service, pending, make_user):
        assert cashout_service.cancel(pending.id, make_user()).error_code == LedgerErrorCode.UNAUTHORIZED

    def test_cancel_after_processing(self, cashout_service, pending, requester, admin, balance_of):
        cashout_service.admin_set_status(pending.id, CashoutStatus.PROCESSING, acting_user=admin)

        result = cashout_service.cancel(pending.id, requester)

        assert result.error_code == LedgerErrorCode.INVALID_STATE
        assert balance_of(requester) == 500

    def test_cancel_twice_refunds_once(self, db, cashout_service, pending, requester, balance_of):
        cashout_service.cancel(pending.id, requester)

        again = cashout_service.cancel(pending.id, requester)

        assert again.error_code == LedgerErrorCode.INVALID_STATE
        assert balance_of(requester) == 1000
        assert len(_refunds(db, requester)) == 1


class TestCashoutStats:
    """출금 조회/통계 테스트"""

    @pytest.fixture
    def history(self, cashout_service, requester, admin, make_user):
        """requester: 완료 300(3), 대기 200(2), 거절 100(1) / other: 완료 400(4)"""
        other = make_user(points=1000)
        done = cashout_service.request(requester, 300, CashoutMethod.ALIPAY, "a").data
        cashout_service.request(requester, 200, CashoutMethod.BANK, "b")
        rejected = cashout_service.request(requester, 100, CashoutMethod.WECHAT, "c").data
        other_done = cashout_service.request(other, 400, CashoutMethod.ALIPAY, "d").data
        cashout_service.admin_set_status(done.id, CashoutStatus.COMPLETED, acting_user=admin)
        cashout_service.admin_set_status(rejected.id, CashoutStatus.REJECTED, acting_user=admin)
        cashout_service.admin_set_status(other_done.id, CashoutStatus.COMPLETED, acting_user=admin)
        return other

    def test_totals(self, cashout_service, requester, history):
        today = utc_now().date()

        totals = cashout_service.get_total_amount_by_status()

        assert totals.pending_amount == 2
        assert totals.processing_amount == 0
        assert totals.completed_amount == 7
        assert totals.rejected_amount == 1
        assert cashout_service.get_total_amount_by_user(requester) == 3
        assert cashout_service.get_cashout_count_by_user(requester) == 3
        assert cashout_service.get_amount_by_date_range(today, today) == 7
        assert cashout_service.get_amount_by_date_range(today, today, user_id=history) == 4
        assert cashout_service.get_amount_by_date_range(
            today - timedelta(days=5), today - timedelta(days=1)
        ) == 0

    def test_user_and_admin_stats(self, cashout_service, requester, admin, history):
        user_stats = cashout_service.get_user_stats(requester)
        admin_stats = cashout_service.get_admin_stats(admin)
        denied = cashout_service.get_admin_stats(requester)

        assert user_stats.total_amount == 3
        assert user_stats.total_count == 3
        assert user_stats.recent_amount == 3
        assert admin_stats.success is True
        assert admin_stats.data.completed_amount == 7
        assert denied.error_code == LedgerErrorCode.UNAUTHORIZED

    def test_daily_stats(self, cashout_service, history):
        today = utc_now().date()

        daily = cashout_service.get_daily_stats(today, today)

        assert len(daily) == 1
        assert daily[0].date == today.isoformat()
        assert daily[0].count == 4
        assert daily[0].total_points == 1000
        assert daily[0].total_amount == 10

    def test_list_filters(self, cashout_service, requester, history):
        mine = cashout_service.get_user_cashouts(requester, limit=2)
        pending_only = cashout_service.list_cashouts(status=CashoutStatus.PENDING)
        alipay = cashout_service.list_cashouts(method=CashoutMethod.ALIPAY)

        assert mine.total_count == 3
        assert mine.has_next is True
        assert [c.points for c in mine.items] == [100, 200]
        assert [c.points for c in pending_only.items] == [200]
        assert alipay.total_count == 2
