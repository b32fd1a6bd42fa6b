from enum import Enum
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class LedgerErrorCode(str, Enum):
    """원장 엔진이 반환하는 예상된 실패 분류"""

    NOT_FOUND = "NOT_FOUND"  # 사용자/코드/송금/출금 없음
    INVALID_STATE = "INVALID_STATE"  # 현재 상태에서 허용되지 않는 작업
    UNAUTHORIZED = "UNAUTHORIZED"  # 송금자/수신자/신청자/관리자가 아님
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"  # 차감 시 잔액이 음수가 됨
    INVALID_CREDENTIAL = "INVALID_CREDENTIAL"  # 비밀번호 불일치
    EXPIRED = "EXPIRED"  # 만료된 코드
    ALREADY_CONSUMED = "ALREADY_CONSUMED"  # 이미 사용된 코드
    INVALID_AMOUNT = "INVALID_AMOUNT"  # 0 이하 포인트, 최소 출금액 미달 등
    INVALID_ARGUMENT = "INVALID_ARGUMENT"  # 지원하지 않는 출금 수단 등 잘못된 입력값


class LedgerResult(BaseModel, Generic[T]):
    """원장 작업 결과 - 성공 시 data, 실패 시 error_code와 message"""

    success: bool = Field(..., description="성공 여부")
    data: Optional[T] = Field(None, description="결과 스냅샷")
    error_code: Optional[LedgerErrorCode] = Field(None, description="실패 분류")
    message: str = Field("", description="응답 메시지")

    @classmethod
    def ok(cls, data: T, message: str = "OK") -> "LedgerResult[T]":
        return cls(success=True, data=data, error_code=None, message=message)

    @classmethod
    def fail(cls, error_code: LedgerErrorCode, message: str) -> "LedgerResult[T]":
        return cls(success=False, data=None, error_code=error_code, message=message)

    def raise_for_error(self) -> None:
        """실패 결과면 분류에 맞는 API 예외를 raise"""
        if self.success:
            return
        from pointsapi.core.exceptions import to_api_exception

        raise to_api_exception(self.error_code, self.message)

    def unwrap(self) -> T:
        self.raise_for_error()
        return self.data
