from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pointsapi.config import settings


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """DB URL에 맞는 엔진 생성 (SQLite는 풀 옵션 대신 스레드 체크 해제)"""
    if database_url.startswith("sqlite"):
        sqlite_engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )

        # SQLite는 기본적으로 외래키를 검사하지 않음
        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=echo,  # 디버그 모드에서 SQL 로깅
    )


def build_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False: 커밋 후에도 스냅샷 변환 시 속성 접근 가능
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        expire_on_commit=False,
    )


engine = build_engine(settings.database_url, echo=settings.DEBUG)

SessionLocal = build_session_factory(engine)
