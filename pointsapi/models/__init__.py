"""ORM 모델 - Base.metadata에 모든 테이블이 등록되도록 한 곳에서 import"""

from .base import Base, BaseModel
from .user import User, UserRole
from .pointrak import Pointrak, PointrakChannel
from .pay_serial import PaySerial, PaySerialStatus
from .transaction import Transaction, TransactionStatus
from .cashout import Cashout, CashoutMethod, CashoutStatus

__all__ = [
    "Base",
    "BaseModel",
    "User",
    "UserRole",
    "Pointrak",
    "PointrakChannel",
    "PaySerial",
    "PaySerialStatus",
    "Transaction",
    "TransactionStatus",
    "Cashout",
    "CashoutMethod",
    "CashoutStatus",
]
