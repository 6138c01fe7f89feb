from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings
from assessment.db.models.base import Base

settings = get_settings()

# Sync engine/session
engine = create_engine(settings.database_url, echo=settings.log_level == "DEBUG", pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def make_session_factory(bind: Engine) -> sessionmaker[Session]:
    """Build a session factory with the same options as ``SessionLocal``."""
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(bind: Engine | None = None) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables initialized")


def check_connection(bind: Engine | None = None) -> tuple[str, str | None]:
    """Return ("ok", None) or ("error", message)."""
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
        return "ok", None
    except SQLAlchemyError as e:
        return "error", str(e)


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = (factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:  # Intentionally broad - rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()

