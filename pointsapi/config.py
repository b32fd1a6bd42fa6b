from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="pointsapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Points Ledger"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = ""
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = ""

    # 직접 지정하면 POSTGRES_* 조합보다 우선 (테스트/로컬은 SQLite)
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if not self.POSTGRES_HOST:
            return "sqlite:///./points.db"

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Cashout
    CASHOUT_RATE: int = 100  # 100 포인트 = 외부 통화 1 단위
    CASHOUT_MIN_AMOUNT: int = 1  # 최소 출금 금액
    CASHOUT_RECENT_DAYS: int = 30  # 사용자 통계의 최근 출금 집계 기간

    # PaySerial
    PAY_SERIAL_DEFAULT_HOURS: int = 24
    PAY_SERIAL_MAX_HOURS: int = 8760  # 1년
    PAY_SERIAL_SN_LENGTH: int = 16
    PAY_SERIAL_REFUND_ON_EXPIRY: bool = False  # 만료 시 발행자에게 포인트 반환 여부

    # Serial numbers
    POINTRAK_SN_LENGTH: int = 20
    TRANSACTION_SN_LENGTH: int = 20

    # Pagination
    MAX_PAGE_SIZE: int = 50


settings = Settings()
