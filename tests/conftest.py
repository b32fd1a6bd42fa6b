import pytest
from datetime import datetime, timedelta
from typing import Optional

from pointsapi.config import Settings
from pointsapi.database.connection import build_engine, build_session_factory
from pointsapi.models import Base, UserRole
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.services.cashout_service import CashoutService
from pointsapi.services.pay_serial_service import PaySerialService
from pointsapi.services.point_service import PointService
from pointsapi.services.transaction_service import TransactionService
from pointsapi.utils.date_utils import utc_now


class FixedClock:
    """테스트용 시계 - advance()로만 시간이 흐름"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine(tmp_path):
    """테스트마다 새 SQLite 파일 DB"""
    engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, DATABASE_URL="sqlite://")


@pytest.fixture
def clock():
    return FixedClock(utc_now())


@pytest.fixture
def make_user(db):
    """사용자 생성 팩토리 - 생성된 사용자 ID 반환"""
    repo = UserRepository(db)
    counter = {"n": 0}

    def _make_user(
        points: int = 0,
        pay_password: Optional[str] = None,
        role: UserRole = UserRole.USER,
        nickname: Optional[str] = None,
    ) -> int:
        counter["n"] += 1
        user = repo.create_user(
            nickname=nickname or f"user{counter['n']}",
            email=f"user{counter['n']}@example.com",
            points=points,
            pay_password=pay_password,
            role=role,
        )
        return user.id

    return _make_user


@pytest.fixture
def balance_of(db):
    repo = UserRepository(db)

    def _balance_of(user_id: int) -> int:
        return repo.get_balance(user_id)

    return _balance_of


@pytest.fixture
def point_service(db, test_settings, clock):
    return PointService(db, settings=test_settings, clock=clock)


@pytest.fixture
def pay_serial_service(db, point_service, test_settings, clock):
    return PaySerialService(
        db, point_service=point_service, settings=test_settings, clock=clock
    )


@pytest.fixture
def transaction_service(db, point_service, test_settings, clock):
    return TransactionService(
        db, point_service=point_service, settings=test_settings, clock=clock
    )


@pytest.fixture
def cashout_service(db, point_service, test_settings, clock):
    return CashoutService(
        db, point_service=point_service, settings=test_settings, clock=clock
    )
