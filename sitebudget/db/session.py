# sitebudget/db/session.py
from contextlib import contextmanager
from typing import Generator, Optional
import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from sitebudget.logger import get_logger

logger = get_logger(__name__)

_engine: Optional[Engine] = None
_SessionLocal = None


def configure_engine(db_url: str) -> Engine:
    """(Re)bind the module engine to db_url. Called by create_app and tests."""
    global _engine, _SessionLocal
    if _engine is not None and str(_engine.url) == db_url:
        return _engine
    reset_engine()
    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    _engine = create_engine(db_url, connect_args=connect_args)
    logger.info(f"Database engine bound to {_engine.url.render_as_string(hide_password=True)}")
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        db_url = os.environ.get("DATABASE_URL")
        if not db_url:
            raise RuntimeError("DATABASE_URL not set")
        configure_engine(db_url)
    return _engine


def get_session() -> Session:
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=get_engine(),
        )
    return _SessionLocal()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Transactional scope for one request.
    Commits on normal exit, rolls back and re-raises on any exception.
    """
    db = get_session()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def reset_engine() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None
