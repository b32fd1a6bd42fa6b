from fastapi import HTTPException, status
from typing import Optional, Dict, Any

from pointsapi.schemas.common import LedgerErrorCode


class BaseAPIException(HTTPException):
    """Base exception for API errors"""
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.error_code = error_code
        self.message = message
        self.details = details or {}

        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": error_code,
                    "message": message,
                    "details": self.details
                }
            }
        )

    def __str__(self) -> str:  # Ensure str(e) returns the human message
        return self.message

class AuthorizationError(BaseAPIException):
    """Authorization related errors"""
    def __init__(self, message: str = "Access forbidden", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="AUTH_002",
            message=message,
            details=details
        )

class ValidationError(BaseAPIException):
    """Validation errors"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_001",
            message=message,
            details=details
        )

class NotFoundError(BaseAPIException):
    """Resource not found errors"""
    def __init__(self, message: str = "Resource not found", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="NOT_FOUND_001",
            message=message,
            details=details
        )

class ConflictError(BaseAPIException):
    """Resource conflict errors (state does not allow the operation)"""
    def __init__(self, message: str = "Resource conflict", details: Optional[Dict] = None, error_code: str = "CONFLICT_001"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            message=message,
            details=details
        )

class InternalServerError(BaseAPIException):
    """Internal server errors"""
    def __init__(self, message: str = "Internal server error", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_code="INTERNAL_001",
            message=message,
            details=details
        )

class InsufficientBalanceError(BaseAPIException):
    """Insufficient balance errors"""
    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="BALANCE_001",
            message=message,
            details=details
        )

class InvalidCredentialError(BaseAPIException):
    """Wrong payment password / redemption password"""
    def __init__(self, message: str = "Invalid credential", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="CREDENTIAL_001",
            message=message,
            details=details
        )

class ExpiredError(BaseAPIException):
    """Redemption code expired"""
    def __init__(self, message: str = "Expired", details: Optional[Dict] = None):
        super().__init__(
            status_code=status.HTTP_410_GONE,
            error_code="EXPIRED_001",
            message=message,
            details=details
        )


class LedgerError(Exception):
    """
    원장 엔진 내부에서 발생하는 예상된 비즈니스 실패

    unit of work 안에서 raise되어 롤백을 유도하고, 서비스 경계에서
    LedgerResult.fail(...)로 변환되어 호출자에게 값으로 반환됩니다.
    """

    def __init__(self, code: LedgerErrorCode, message: str):
        super().__init__(message)
        self.code = code
        self.message = message

    def __repr__(self) -> str:
        return f"LedgerError(code={self.code.value}, message={self.message!r})"


def to_api_exception(code: LedgerErrorCode, message: str) -> BaseAPIException:
    """분류 코드를 전송 계층에서 그대로 raise할 수 있는 예외로 변환"""
    details = {"ledger_code": code.value}

    if code == LedgerErrorCode.NOT_FOUND:
        return NotFoundError(message, details)
    if code == LedgerErrorCode.UNAUTHORIZED:
        return AuthorizationError(message, details)
    if code == LedgerErrorCode.INSUFFICIENT_BALANCE:
        return InsufficientBalanceError(message, details)
    if code == LedgerErrorCode.INVALID_CREDENTIAL:
        return InvalidCredentialError(message, details)
    if code == LedgerErrorCode.EXPIRED:
        return ExpiredError(message, details)
    if code == LedgerErrorCode.ALREADY_CONSUMED:
        return ConflictError(message, details, error_code="CONFLICT_002")
    if code == LedgerErrorCode.INVALID_STATE:
        return ConflictError(message, details)
    if code in (LedgerErrorCode.INVALID_AMOUNT, LedgerErrorCode.INVALID_ARGUMENT):
        return ValidationError(message, details)
    return InternalServerError(message, details)
