from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings
from functools import lru_cache, wraps
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./karaoke_ledger.db"
    # 로컬 스냅샷 파일 경로 (빈 문자열이면 사용 안 함)
    local_state_path: str = "./data/ledger_state.json"
    # True 면 영업 중이 아닐 때 방 진행 시작 요청을 409 로 거절
    require_business_session: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def build_engine(database_url: str):
    # SQLite 는 connect_args={"check_same_thread": False} 필요
    # (미러 저장은 BackgroundTasks 스레드에서 실행됨)
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {},
        pool_pre_ping=True
    )


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: Database Session 제공

    yield 를 사용해 요청이 끝나면 session 이 닫히도록 보장
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: 미러 저장소 쓰기의 원자성 보장

    사용법:
        @transactional
        def record_something(db: Session, ...):
            db.add(row)
            # commit 은 decorator 가 처리

    함수 내부에서 예외가 발생하면:
        - 자동 rollback
        - 예외는 다시 던짐 (outbox dispatcher 가 권고성 알림으로 처리)

    주의:
        - 첫 번째 인자는 반드시 db: Session
        - 함수 안에서 직접 commit 하지 않음
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
