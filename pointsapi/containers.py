from dependency_injector import containers, providers

from pointsapi.config import Settings
from pointsapi.core.credentials import PlainSecretVerifier
from pointsapi.database.session import get_db
from pointsapi.repositories.cashout_repository import CashoutRepository
from pointsapi.repositories.pay_serial_repository import PaySerialRepository
from pointsapi.repositories.pointrak_repository import PointrakRepository
from pointsapi.repositories.transaction_repository import TransactionRepository
from pointsapi.repositories.user_repository import UserRepository
from pointsapi.services.cashout_service import CashoutService
from pointsapi.services.pay_serial_service import PaySerialService
from pointsapi.services.point_service import PointService
from pointsapi.services.transaction_service import TransactionService
from pointsapi.utils.date_utils import utc_now


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)
    clock = providers.Object(utc_now)
    credential_verifier = providers.Singleton(PlainSecretVerifier)


class RepositoryModule(containers.DeclarativeContainer):
    """Database repositories."""

    config = providers.DependenciesContainer()

    get_db = providers.Resource(get_db)
    user_repository = providers.Factory(UserRepository, db=get_db)
    pointrak_repository = providers.Factory(
        PointrakRepository,
        db=get_db,
        sn_length=config.config.provided.POINTRAK_SN_LENGTH,
    )
    pay_serial_repository = providers.Factory(
        PaySerialRepository,
        db=get_db,
        sn_length=config.config.provided.PAY_SERIAL_SN_LENGTH,
    )
    transaction_repository = providers.Factory(
        TransactionRepository,
        db=get_db,
        sn_length=config.config.provided.TRANSACTION_SN_LENGTH,
    )
    cashout_repository = providers.Factory(CashoutRepository, db=get_db)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    point_service = providers.Factory(
        PointService,
        db=repositories.get_db,
        settings=config.config,
        clock=config.clock,
    )
    pay_serial_service = providers.Factory(
        PaySerialService,
        db=repositories.get_db,
        point_service=point_service,
        verifier=config.credential_verifier,
        settings=config.config,
        clock=config.clock,
    )
    transaction_service = providers.Factory(
        TransactionService,
        db=repositories.get_db,
        point_service=point_service,
        verifier=config.credential_verifier,
        settings=config.config,
        clock=config.clock,
    )
    cashout_service = providers.Factory(
        CashoutService,
        db=repositories.get_db,
        point_service=point_service,
        settings=config.config,
        clock=config.clock,
    )


class Container(containers.DeclarativeContainer):
    """Application container."""

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule, config=config)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
