from .common import LedgerErrorCode, LedgerResult
from .pagination import Page
from .user import UserBalanceSnapshot
from .points import PointsBalanceResponse, PointrakEntry, PointsTransactionResponse
from .pay_serial import PaySerialResponse, PaySerialRedeemResponse
from .transaction import TransactionResponse, TransferSettlementResponse, TransferTotalsResponse
from .cashout import CashoutResponse
