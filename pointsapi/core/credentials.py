"""
비밀번호 검증 추상화

송금 확인(결제 비밀번호)과 교환 코드 사용(코드 비밀번호)은 모두 이 인터페이스를 통해
검증합니다. 비교 방식(평문 상수시간 비교, 해시 비교 등)은 엔진 로직을 건드리지 않고
구현체 교체만으로 바꿀 수 있습니다.
"""

import secrets
from abc import ABC, abstractmethod
from typing import Optional

from pointsapi.models.user import User


class CredentialVerifier(ABC):
    """저장된 비밀값과 입력값 비교"""

    @abstractmethod
    def matches(self, stored: Optional[str], supplied: Optional[str]) -> bool:
        ...

    def verify_pay_password(self, user: User, supplied: Optional[str]) -> bool:
        """사용자의 결제 비밀번호 확인"""
        return self.matches(user.pay_password, supplied)


class PlainSecretVerifier(CredentialVerifier):
    """평문 비밀값을 상수 시간으로 비교 (타이밍 공격 방지)"""

    def matches(self, stored: Optional[str], supplied: Optional[str]) -> bool:
        if not stored or supplied is None:
            return False
        return secrets.compare_digest(stored.encode("utf-8"), supplied.encode("utf-8"))
