from unittest.mock import Mock

from pointsapi.core.credentials import CredentialVerifier, PlainSecretVerifier


class TestPlainSecretVerifier:
    """평문 비밀값 비교 테스트"""

    def test_matches(self):
        verifier = PlainSecretVerifier()

        assert verifier.matches("abc123", "abc123") is True
        assert verifier.matches("abc123", "abc124") is False
        assert verifier.matches("비밀", "비밀") is True

    def test_missing_values_never_match(self):
        verifier = PlainSecretVerifier()

        assert verifier.matches(None, "") is False
        assert verifier.matches("", "") is False
        assert verifier.matches("abc", None) is False

    def test_verify_pay_password_uses_user_secret(self):
        verifier = PlainSecretVerifier()
        user = Mock(pay_password="pay-pw")

        assert verifier.verify_pay_password(user, "pay-pw") is True
        assert verifier.verify_pay_password(user, "PAY-PW") is False


class TestCustomVerifier:
    def test_engine_uses_injected_verifier(self, db, make_user, point_service, test_settings, clock):
        """검증 방식을 바꿔도 엔진 로직은 그대로"""
        from pointsapi.services.transaction_service import TransactionService

        class UpperCaseVerifier(CredentialVerifier):
            def matches(self, stored, supplied):
                return stored is not None and supplied is not None and stored == supplied.upper()

        sender = make_user(points=100, pay_password="SECRET")
        receiver = make_user()
        service = TransactionService(
            db,
            point_service=point_service,
            verifier=UpperCaseVerifier(),
            settings=test_settings,
            clock=clock,
        )
        created = service.create(sender, receiver, 10, 1).data

        assert service.confirm_with_password(created.id, sender, "secret").success is True
