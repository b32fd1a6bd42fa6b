from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.orm import Session, sessionmaker

from pointsapi.database.connection import SessionLocal


def get_db(session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """요청 단위 세션. 커밋은 각 엔진의 unit of work가 담당한다."""
    db = (session_factory or SessionLocal)()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context(session_factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """배치/스크립트용 세션 (블록 종료 시 커밋, 예외 시 롤백)"""
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
