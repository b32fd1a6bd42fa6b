import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

from pointsapi.config import settings
from pointsapi.database.session import get_db_context
from pointsapi.logging_config import setup_logging
from pointsapi.services.pay_serial_service import PaySerialService

logger = logging.getLogger(__name__)


def expire_pay_serials():
    """만료 시각이 지난 active 교환 코드를 expired로 정리 (주기 실행용)"""
    with get_db_context() as db:
        swept = PaySerialService(db, settings=settings).expire_overdue()

    logger.info(
        f"Pay serial sweep finished: expired={swept.expired_count}, "
        f"refunded_points={swept.refunded_points}"
    )
    return swept


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    expire_pay_serials()
