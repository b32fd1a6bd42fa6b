# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .user_repository import UserRepository
from .pointrak_repository import PointrakRepository
from .pay_serial_repository import PaySerialRepository
from .transaction_repository import TransactionRepository
from .cashout_repository import CashoutRepository

__all__ = [
    "BaseRepository",
    "UserRepository",
    "PointrakRepository",
    "PaySerialRepository",
    "TransactionRepository",
    "CashoutRepository",
]
