"""Database engine, session factory and commit helper"""
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from authwave.config import settings
from authwave.services.errors import AlreadyExists, DatabaseError
from authwave.utils.logger import logger


def _engine_kwargs() -> dict:
    if settings.is_sqlite:
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_recycle": settings.DATABASE_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_kwargs())
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one database session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, conflict_message: Optional[str] = None) -> None:
    """Commit the current transaction, translating storage failures.

    An integrity violation becomes ``AlreadyExists`` when ``conflict_message`` is
    given (a uniqueness race lost after the explicit pre-check passed). Every other
    failure is rolled back and surfaced as ``DatabaseError``.
    """
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if conflict_message:
            raise AlreadyExists(conflict_message) from exc
        logger.error("Integrity violation on commit", exc_info=True)
        raise DatabaseError("The database rejected the write") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Database commit failed", exc_info=True)
        raise DatabaseError("The database is unavailable, please retry later") from exc
