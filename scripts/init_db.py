import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import logging

from pointsapi.config import settings
from pointsapi.database.connection import engine
from pointsapi.logging_config import setup_logging
from pointsapi.models import Base

logger = logging.getLogger(__name__)


def init_db():
    """데이터베이스 초기화 (모든 원장 테이블 생성)"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info(
            f"Database initialized successfully: {', '.join(sorted(Base.metadata.tables))}"
        )
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL, sql_echo=settings.DEBUG)
    init_db()
