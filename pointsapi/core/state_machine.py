"""
상태 전이 테이블

송금(Transaction), 교환 코드(PaySerial), 출금(Cashout)의 허용 전이를 한 곳에서 관리합니다.
각 엔진은 상태를 바꾸기 전에 반드시 여기서 전이 가능 여부를 확인하고,
실제 UPDATE는 기대하는 이전 상태를 조건으로 걸어 수행합니다.
"""

from enum import Enum
from typing import Dict, Generic, List, Set, TypeVar

from pointsapi.models.cashout import CashoutStatus
from pointsapi.models.pay_serial import PaySerialStatus
from pointsapi.models.transaction import TransactionStatus

S = TypeVar("S", bound=Enum)


class StateMachine(Generic[S]):
    """
    Manages valid status transitions for one entity
    """

    def __init__(self, name: str, transitions: Dict[S, Set[S]]):
        self.name = name
        self.transitions = transitions

    def can_transition(self, current_status: S, new_status: S) -> bool:
        """
        Check if transition is valid

        Args:
            current_status: Current status
            new_status: Desired new status

        Returns:
            True if transition is allowed
        """
        return new_status in self.transitions.get(current_status, set())

    def get_valid_transitions(self, current_status: S) -> List[S]:
        return sorted(self.transitions.get(current_status, set()), key=lambda s: s.value)

    def is_terminal_state(self, status: S) -> bool:
        return len(self.transitions.get(status, set())) == 0


transaction_state_machine: StateMachine[TransactionStatus] = StateMachine(
    "transaction",
    {
        TransactionStatus.PENDING: {
            TransactionStatus.PASSWORD,
            TransactionStatus.REFUSE,
        },
        TransactionStatus.PASSWORD: {
            TransactionStatus.SUCCESS,
            TransactionStatus.FAIL,
            TransactionStatus.REFUSE,
        },
        TransactionStatus.SUCCESS: set(),
        TransactionStatus.FAIL: set(),
        TransactionStatus.REFUSE: set(),
    },
)

pay_serial_state_machine: StateMachine[PaySerialStatus] = StateMachine(
    "pay_serial",
    {
        PaySerialStatus.ACTIVE: {PaySerialStatus.USED, PaySerialStatus.EXPIRED},
        PaySerialStatus.USED: set(),
        PaySerialStatus.EXPIRED: set(),
    },
)

# processing 이후에는 거절(환불) 경로가 없다: pending -> rejected만 환불
cashout_state_machine: StateMachine[CashoutStatus] = StateMachine(
    "cashout",
    {
        CashoutStatus.PENDING: {
            CashoutStatus.PROCESSING,
            CashoutStatus.COMPLETED,
            CashoutStatus.REJECTED,
        },
        CashoutStatus.PROCESSING: {CashoutStatus.COMPLETED},
        CashoutStatus.COMPLETED: set(),
        CashoutStatus.REJECTED: set(),
    },
)
