import pytest
from datetime import timedelta
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from pointsapi.core.exceptions import InternalServerError, NotFoundError, ValidationError
from pointsapi.models import Pointrak, PointrakChannel, UserRole
from pointsapi.schemas.common import LedgerErrorCode
from pointsapi.utils.date_utils import utc_now


def _entries_for(db, user_id):
    return db.query(Pointrak).filter(Pointrak.owner == user_id).order_by(Pointrak.id).all()


class TestApplyDelta:
    """잔액 델타 적용 테스트"""

    def test_credit_records_single_entry(self, db, point_service, make_user, balance_of):
        """적립 시 잔액 증가 + 원장 1건"""
        # Given
        user_id = make_user(points=100)

        # When
        result = point_service.apply_delta(
            user_id, 50, PointrakChannel.GAME_VICTORY, detail="win"
        )

        # Then
        assert result.success is True
        assert result.data.balance_after == 150
        assert result.data.delta_points == 50
        assert balance_of(user_id) == 150

        entries = _entries_for(db, user_id)
        assert len(entries) == 1
        assert entries[0].points == 50
        assert entries[0].balance_after == 150
        assert entries[0].channel == PointrakChannel.GAME_VICTORY
        assert entries[0].detail == "win"
        assert len(entries[0].sn) == 20
        assert result.data.pointrak_sn == entries[0].sn

    def test_debit_to_exactly_zero(self, point_service, make_user, balance_of):
        """잔액 전부 차감은 허용"""
        user_id = make_user(points=80)

        result = point_service.apply_delta(user_id, -80, PointrakChannel.SHOPPING)

        assert result.success is True
        assert result.data.balance_after == 0
        assert balance_of(user_id) == 0

    def test_over_debit_is_rejected_not_clamped(self, db, point_service, make_user, balance_of):
        """잔액 초과 차감은 실패하며 0으로 보정되지 않음"""
        # Given
        user_id = make_user(points=30)

        # When
        result = point_service.apply_delta(user_id, -31, PointrakChannel.SHOPPING)

        # Then
        assert result.success is False
        assert result.error_code == LedgerErrorCode.INSUFFICIENT_BALANCE
        assert balance_of(user_id) == 30
        assert _entries_for(db, user_id) == []

    def test_unknown_user(self, point_service):
        result = point_service.apply_delta(9999, 10, PointrakChannel.PROMOTION)

        assert result.success is False
        assert result.error_code == LedgerErrorCode.NOT_FOUND

    def test_zero_delta_is_invalid(self, db, point_service, make_user):
        user_id = make_user(points=10)

        result = point_service.apply_delta(user_id, 0, PointrakChannel.PROMOTION)

        assert result.error_code == LedgerErrorCode.INVALID_AMOUNT
        assert _entries_for(db, user_id) == []

    def test_store_failure_rolls_back_and_raises(self, db, point_service, make_user, balance_of):
        """원장 기록 중 DB 오류가 나면 잔액 변경도 롤백"""
        # Given
        user_id = make_user(points=100)

        # When / Then
        with patch.object(
            point_service.pointrak_repo,
            "append",
            side_effect=OperationalError("INSERT", {}, Exception("disk I/O error")),
        ):
            with pytest.raises(InternalServerError):
                point_service.apply_delta(user_id, -40, PointrakChannel.SHOPPING)

        assert balance_of(user_id) == 100
        assert _entries_for(db, user_id) == []


class TestConvenienceOperations:
    """적립/차감/관리자 조정 테스트"""

    def test_add_and_deduct(self, point_service, make_user, balance_of):
        user_id = make_user()

        assert point_service.add_points(user_id, 300).success is True
        assert point_service.deduct_points(user_id, 120).success is True
        assert balance_of(user_id) == 180

    @pytest.mark.parametrize("amount", [0, -5])
    def test_non_positive_amount(self, point_service, make_user, amount):
        user_id = make_user(points=100)

        assert point_service.add_points(user_id, amount).error_code == LedgerErrorCode.INVALID_AMOUNT
        assert point_service.deduct_points(user_id, amount).error_code == LedgerErrorCode.INVALID_AMOUNT

    def test_admin_adjust_requires_admin(self, point_service, make_user, balance_of):
        user_id = make_user(points=100)
        not_admin = make_user()

        result = point_service.admin_adjust_points(not_admin, user_id, 50, "bonus")

        assert result.error_code == LedgerErrorCode.UNAUTHORIZED
        assert balance_of(user_id) == 100

    def test_admin_adjust(self, db, point_service, make_user, balance_of):
        user_id = make_user(points=100)
        admin_id = make_user(role=UserRole.ADMIN)

        result = point_service.admin_adjust_points(admin_id, user_id, -60, "correction")

        assert result.success is True
        assert balance_of(user_id) == 40
        entry = _entries_for(db, user_id)[0]
        assert entry.channel == PointrakChannel.ADMIN_ADJUST
        assert f"Admin adjustment by {admin_id}" in entry.detail


class TestPointQueries:
    """잔액/원장/통계 조회 테스트"""

    def test_get_user_balance(self, point_service, make_user):
        user_id = make_user(points=77)

        balance = point_service.get_user_balance(user_id)

        assert balance.user_id == user_id
        assert balance.balance == 77

    def test_get_user_balance_not_found(self, point_service):
        with pytest.raises(NotFoundError):
            point_service.get_user_balance(12345)

    def test_history_newest_first_with_paging(self, point_service, make_user):
        # Given
        user_id = make_user()
        for amount in (10, 20, 30):
            point_service.add_points(user_id, amount)

        # When
        first_page = point_service.get_user_pointraks(user_id, limit=2, offset=0)
        second_page = point_service.get_user_pointraks(user_id, limit=2, offset=2)

        # Then
        assert first_page.balance == 60
        assert first_page.total_count == 3
        assert first_page.has_next is True
        assert [e.points for e in first_page.entries] == [30, 20]
        assert all(e.transaction_type == "CREDIT" for e in first_page.entries)
        assert [e.points for e in second_page.entries] == [10]
        assert second_page.has_next is False

    def test_history_limit_is_clamped(self, point_service, make_user):
        user_id = make_user()
        point_service.add_points(user_id, 1)

        history = point_service.get_user_pointraks(user_id, limit=1000)

        assert history.total_count == 1

    def test_totals_by_owner_channel_and_day(self, point_service, make_user):
        # Given
        alice = make_user(points=100)
        bob = make_user()
        point_service.add_points(alice, 40, PointrakChannel.GAME_VICTORY)
        point_service.deduct_points(alice, 15, PointrakChannel.GAME_DEFEAT)
        point_service.add_points(bob, 5, PointrakChannel.GAME_VICTORY)
        today = utc_now().date()

        # When
        owner_stats = point_service.get_total_points_by_owner(alice)
        ranged = point_service.get_total_points_by_owner(alice, today, today)
        channel_total = point_service.get_total_points_by_channel(PointrakChannel.GAME_VICTORY)
        daily = point_service.get_daily_stats(today - timedelta(days=1), today)

        # Then
        assert owner_stats.total_points == 25
        assert owner_stats.entry_count == 2
        assert ranged.total_points == 25
        assert channel_total.total_points == 45
        assert channel_total.entry_count == 2
        assert len(daily) == 1
        assert daily[0].date == today.isoformat()
        assert daily[0].total_points == 30
        assert daily[0].user_count == 2

    def test_entries_by_date_range(self, point_service, make_user):
        user_id = make_user()
        point_service.add_points(user_id, 10)
        today = utc_now().date()

        assert len(point_service.get_pointraks_by_date_range(user_id, today, today)) == 1
        assert point_service.get_pointraks_by_date_range(
            user_id, today - timedelta(days=3), today - timedelta(days=1)
        ) == []

    def test_invalid_date_range(self, point_service, make_user):
        user_id = make_user()
        today = utc_now().date()

        with pytest.raises(ValidationError):
            point_service.get_pointraks_by_date_range(user_id, today, today - timedelta(days=1))

    def test_integrity_checks(self, point_service, make_user):
        alice = make_user(points=500)
        bob = make_user()
        point_service.deduct_points(alice, 200)
        point_service.add_points(bob, 200)

        user_check = point_service.verify_user_integrity(alice)
        global_check = point_service.verify_global_integrity()

        assert user_check.status == "OK"
        assert user_check.latest_balance_after == 300
        assert user_check.live_balance == 300
        assert global_check.status == "OK"
        assert global_check.entry_count == 2
        assert global_check.ledger_sum == 0

    def test_can_afford(self, point_service, make_user):
        user_id = make_user(points=50)

        assert point_service.can_afford(user_id, 50) is True
        assert point_service.can_afford(user_id, 51) is False
        assert point_service.can_afford(999, 1) is False
