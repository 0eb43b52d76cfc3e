"""
Database Session Management

Handles connection pooling, session lifecycle, and database initialization.
Designed for both hosted PostgreSQL and local development (SQLite).
"""

import os
import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool

from .models import Base

logger = logging.getLogger(__name__)

# =============================================================================
# DATABASE URL CONFIGURATION
# =============================================================================

def get_database_url() -> str:
    """
    Get database URL from environment.

    Priority:
    1. DATABASE_URL
    2. POSTGRES_URL (alternative)
    3. SQLite fallback for local development
    """
    url = os.getenv("DATABASE_URL")

    if url:
        # Hosted PostgreSQL URLs often use postgres:// but SQLAlchemy needs postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        logger.info("Using database from DATABASE_URL")
        return url

    url = os.getenv("POSTGRES_URL")
    if url:
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        logger.info("Using PostgreSQL database from POSTGRES_URL")
        return url

    # SQLite fallback for local development
    sqlite_path = os.getenv("SQLITE_PATH", "linkdesk_dev.db")
    logger.warning(f"No DATABASE_URL found, using SQLite: {sqlite_path}")
    return f"sqlite:///{sqlite_path}"


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def create_db_engine():
    """
    Create database engine with appropriate settings.

    PostgreSQL: Connection pooling, pre-ping
    SQLite: Single file, usable from worker threads
    """
    url = get_database_url()
    is_postgres = url.startswith("postgresql")
    echo = os.getenv("SQL_DEBUG", "false").lower() == "true"

    if is_postgres:
        engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,
            pool_pre_ping=True,
            echo=echo,
        )
        logger.info("Created PostgreSQL engine with connection pooling")
    else:
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},  # Allow multi-thread access
            echo=echo,
        )
        logger.info("Created SQLite engine")

    return engine


# Global engine and session factory (lazy initialization)
_engine = None
_SessionLocal = None


def get_engine():
    """Get or create the database engine."""
    global _engine
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def reset_engine() -> None:
    """Dispose the engine and session factory so the next call re-reads the environment."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


# =============================================================================
# SESSION MANAGEMENT
# =============================================================================

def _get_session_factory():
    """Get or create session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = sessionmaker(
            bind=get_engine(),
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,  # Don't expire objects after commit
        )
    return _SessionLocal


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Commits on success, rolls back on error.

    Usage:
        with get_db_context() as db:
            db.query(Item).all()
    """
    SessionLocal = _get_session_factory()
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# =============================================================================
# DATABASE INITIALIZATION
# =============================================================================

def init_db() -> None:
    """Create all tables that don't exist yet."""
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database initialized ({len(Base.metadata.tables)} tables)")


def check_db_connection() -> bool:
    """Check that the database answers a trivial query."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
