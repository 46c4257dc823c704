from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
from typing import Callable, Optional
import logging

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./fantasy_draft.db"
    log_level: str = "INFO"

    # Draft defaults (a draft may override them at creation)
    default_pick_time_limit: int = 60
    default_auto_pick: bool = True

    # Season reference scores, seeded into score_records when the table is empty
    reference_scores_path: Optional[str] = None

    # Per-subscriber buffer of undelivered broadcast events
    channel_queue_size: int = 100

    cors_origins: list[str] = ["*"]


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()


def build_engine(database_url: str):
    """
    Create an engine for the given URL.

    SQLite connections are shared between FastAPI's worker threads and the
    pick timer threads, so check_same_thread has to be disabled.
    """
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
    FastAPI dependency: one Session per request.

    The session is always closed when the request finishes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def on_commit(db: Session, callback: Callable[[], None]) -> None:
    """
    Register a callback to run after the surrounding @transactional commits.

    Callbacks are dropped if the transaction rolls back, so nothing registered
    here can observe state that was never persisted.
    """
    db.info.setdefault("on_commit", []).append(callback)


def _run_commit_hooks(db: Session, func_name: str) -> None:
    for callback in db.info.pop("on_commit", []):
        try:
            callback()
        except Exception as e:
            # The transaction is already durable; a hook failure must not undo it
            logger.error(f"After-commit hook failed in {func_name}: {e}", exc_info=True)


def transactional(func):
    """
    Transaction decorator: all DB work of the wrapped call is atomic.

    Usage:
        @transactional
        def some_business_logic(db: Session, ...):
            draft = Draft(...)
            db.add(draft)
            # no manual commit, the decorator handles it

    On exception:
        - rollback, pending on_commit callbacks are discarded
        - the exception is re-raised for the caller

    Notes:
        - a Session must be passed positionally (plain functions take it first,
          methods right after self) or as the db keyword
        - do not commit inside the wrapped function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = kwargs.get('db')
        if db is None:
            db = next((arg for arg in args[:2] if isinstance(arg, Session)), None)

        if db is None:
            raise ValueError(
                f"@transactional requires a 'db: Session' argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
        except Exception as e:
            if getattr(e, "expected", False):
                logger.info(f"Transaction rejected in {func.__name__}: {e}")
            else:
                logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            db.info.pop("on_commit", None)
            raise

        _run_commit_hooks(db, func.__name__)
        return result

    return wrapper
