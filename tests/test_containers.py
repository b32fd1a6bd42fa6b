import pytest
from dependency_injector import providers

from pointsapi.containers import Container
from pointsapi.services.cashout_service import CashoutService
from pointsapi.services.point_service import PointService
from pointsapi.services.transaction_service import TransactionService


class TestContainer:
    """DI 컨테이너 구성 테스트"""

    def test_services_share_overridden_session(self, db, test_settings, clock, make_user, balance_of):
        # Given
        container = Container()
        container.config.config.override(providers.Object(test_settings))
        container.config.clock.override(providers.Object(clock))
        container.repositories.get_db.override(providers.Object(db))
        user_id = make_user(points=10)

        # When
        point_service = container.services.point_service()
        transaction_service = container.services.transaction_service()
        cashout_service = container.services.cashout_service()
        point_service.add_points(user_id, 5)

        # Then
        assert isinstance(point_service, PointService)
        assert isinstance(transaction_service, TransactionService)
        assert isinstance(cashout_service, CashoutService)
        assert point_service.db is db
        assert point_service.clock is clock
        assert point_service.settings is test_settings
        assert transaction_service.point_service.settings is test_settings
        assert balance_of(user_id) == 15

    def test_repository_serial_lengths_follow_settings(self, db, test_settings):
        test_settings.PAY_SERIAL_SN_LENGTH = 12
        container = Container()
        container.config.config.override(providers.Object(test_settings))
        container.repositories.get_db.override(providers.Object(db))

        repo = container.repositories.pay_serial_repository()

        assert repo.sn_length == 12

    @pytest.mark.parametrize("service_class", [PointService, TransactionService, CashoutService])
    def test_services_require_explicit_settings(self, db, service_class):
        """설정은 항상 주입받으며 모듈 전역 설정으로 대체하지 않음"""
        with pytest.raises(TypeError):
            service_class(db)
