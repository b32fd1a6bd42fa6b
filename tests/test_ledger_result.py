import pytest

from pointsapi.core.exceptions import (
    AuthorizationError,
    ConflictError,
    ExpiredError,
    InsufficientBalanceError,
    InvalidCredentialError,
    NotFoundError,
    ValidationError,
)
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult


class TestLedgerResult:
    """LedgerResult 생성/변환 테스트"""

    def test_ok(self):
        result = LedgerResult.ok(42, message="done")

        assert result.success is True
        assert result.data == 42
        assert result.error_code is None
        assert result.unwrap() == 42

    def test_fail(self):
        result = LedgerResult.fail(LedgerErrorCode.EXPIRED, "Serial expired")

        assert result.success is False
        assert result.data is None
        assert result.message == "Serial expired"

    @pytest.mark.parametrize(
        "code, exc_type, status_code, api_code",
        [
            (LedgerErrorCode.NOT_FOUND, NotFoundError, 404, "NOT_FOUND_001"),
            (LedgerErrorCode.UNAUTHORIZED, AuthorizationError, 403, "AUTH_002"),
            (LedgerErrorCode.INSUFFICIENT_BALANCE, InsufficientBalanceError, 400, "BALANCE_001"),
            (LedgerErrorCode.INVALID_STATE, ConflictError, 409, "CONFLICT_001"),
            (LedgerErrorCode.ALREADY_CONSUMED, ConflictError, 409, "CONFLICT_002"),
            (LedgerErrorCode.EXPIRED, ExpiredError, 410, "EXPIRED_001"),
            (LedgerErrorCode.INVALID_CREDENTIAL, InvalidCredentialError, 400, "CREDENTIAL_001"),
            (LedgerErrorCode.INVALID_AMOUNT, ValidationError, 422, "VALIDATION_001"),
            (LedgerErrorCode.INVALID_ARGUMENT, ValidationError, 422, "VALIDATION_001"),
        ],
    )
    def test_raise_for_error_maps_codes(self, code, exc_type, status_code, api_code):
        # Given
        result = LedgerResult.fail(code, "boom")

        # When
        with pytest.raises(exc_type) as exc_info:
            result.raise_for_error()

        # Then
        assert exc_info.value.status_code == status_code
        assert exc_info.value.error_code == api_code
        assert exc_info.value.details["ledger_code"] == code.value
        assert str(exc_info.value) == "boom"

    def test_unwrap_failure_raises(self):
        with pytest.raises(NotFoundError):
            LedgerResult.fail(LedgerErrorCode.NOT_FOUND, "missing").unwrap()

    def test_serializes_error_code_as_value(self):
        dumped = LedgerResult.fail(LedgerErrorCode.INVALID_AMOUNT, "bad").model_dump(mode="json")

        assert dumped["error_code"] == "INVALID_AMOUNT"
        assert dumped["success"] is False
