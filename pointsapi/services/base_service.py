"""
원장 엔진 공통 베이스

모든 변경 작업은 unit_of_work() 블록 하나 안에서 수행됩니다.
- 정상 종료: 커밋 1회
- LedgerError: 롤백 후 그대로 전파 (호출부에서 LedgerResult.fail로 변환)
- SQLAlchemyError: 롤백 후 InternalServerError로 변환
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pointsapi.config import Settings
from pointsapi.core.exceptions import InternalServerError, LedgerError
from pointsapi.schemas.common import LedgerErrorCode, LedgerResult
from pointsapi.utils.date_utils import Clock, utc_now

logger = logging.getLogger(__name__)


class LedgerServiceBase:
    """세션/설정/시계를 보관하고 트랜잭션 경계를 제공하는 베이스 서비스"""

    def __init__(
        self,
        db: Session,
        settings: Settings,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.settings = settings
        self.clock = clock or utc_now

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        try:
            yield self.db
            self.db.commit()
        except LedgerError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Store failure, unit of work rolled back: {str(e)}")
            raise InternalServerError(f"Database error: {str(e)}")
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _fail(error: LedgerError, operation: str) -> LedgerResult:
        logger.warning(f"{operation} rejected [{error.code.value}]: {error.message}")
        return LedgerResult.fail(error.code, error.message)

    @staticmethod
    def _require_positive(value: int, label: str) -> None:
        if value is None or value <= 0:
            raise LedgerError(
                LedgerErrorCode.INVALID_AMOUNT, f"{label} must be a positive integer"
            )
