"""Database configuration and session management."""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .core.config import settings
from .exceptions import DatabaseError

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def is_postgresql() -> bool:
    """Check if the configured database is PostgreSQL."""
    return DATABASE_URL.startswith("postgresql")


def create_store_engine(url: str) -> Engine:
    """Create an engine with database-specific tuning."""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})

        # SQLite defaults foreign_keys to OFF; folder deletion relies on
        # ON DELETE CASCADE to remove subfolders and documents.
        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )


engine = create_store_engine(DATABASE_URL)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create base class for models
Base = declarative_base()


def get_db():
    """Dependency for FastAPI routes to get database session.

    Rolls back the transaction on unhandled exceptions so that the
    connection is returned to the pool in a clean state.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def commit_or_raise(db: Session, operation: str) -> None:
    """Commit *db*; on failure roll back and raise DatabaseError."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Commit failed", extra={"operation": operation, "error": str(e)})
        raise DatabaseError(f"Failed to {operation}", original_error=e) from e


def get_session_factory() -> sessionmaker:
    """Dependency exposing the session factory for per-thread sessions."""
    return SessionLocal
