"""
Database engine and session management
PostgreSQL in production, SQLite for tests and local experiments
"""
import logging
from typing import Callable, Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Config
from ..exceptions import AppError
from .base import Base

logger = logging.getLogger(__name__)


def build_engine(config: Config) -> Engine:
    """
    Create the SQLAlchemy engine for the configured DATABASE_URL

    In-memory SQLite gets a StaticPool so every session shares one connection.
    """
    url = config.DATABASE_URL
    if not url:
        raise ValueError("DATABASE_URL is not configured")

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        logger.info("SQLite engine configured")
        return engine

    engine = create_engine(
        url,
        pool_pre_ping=True,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_timeout=config.DB_POOL_TIMEOUT,
        echo=False,
        connect_args={
            "connect_timeout": 10,
            "application_name": "fyw_pay",
        },
    )
    logger.info(
        f"PostgreSQL engine configured: pool_size={config.DB_POOL_SIZE}, "
        f"max_overflow={config.DB_MAX_OVERFLOW}, recycle={config.DB_POOL_RECYCLE}s"
    )
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine"""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create tables that do not exist yet (migrations remain the source of truth in prod)"""
    from . import models  # noqa: F401  register mappers on Base.metadata

    Base.metadata.create_all(bind=engine)
    logger.info("✓ Database tables ensured")


def session_scope(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """
    Yield a session, commit on success, roll back on error, always close
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except AppError:
        db.rollback()
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"Database session error: {e}", exc_info=True)
        raise
    finally:
        db.close()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get database session for a request.
    Use as FastAPI dependency: db: Session = Depends(get_db)
    """
    yield from session_scope(request.app.state.session_factory)
