import secrets
import string

# URL-safe 알파벳 (64자)
SERIAL_ALPHABET = string.ascii_letters + string.digits + "_-"


def generate_serial(length: int) -> str:
    """암호학적 난수로 일련번호 생성 (원장/교환 코드/송금 sn)"""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(SERIAL_ALPHABET) for _ in range(length))
