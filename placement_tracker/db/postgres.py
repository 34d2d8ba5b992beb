from functools import lru_cache
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from placement_tracker.core.config import get_settings
from placement_tracker.core.logger import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_engine() -> Engine:
    """
    Create engine with connection pool on first use.
    pool_size / max_overflow come from settings (5 / 10 by default).
    """
    settings = get_settings()
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not configured")
    return create_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_pre_ping=True,
        echo=settings.debug  # Log SQL queries in debug mode
    )


@lru_cache()
def get_session_factory() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Commits on success, rolls back on any error.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.error("PostgreSQL connection failed: %s", e)
        return False


def rows_to_dicts(result) -> list:
    """Convert a SQLAlchemy result to a list of dicts."""
    columns = list(result.keys())
    return [dict(zip(columns, row)) for row in result.fetchall()]


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    This is useful for complex queries and reports.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        return rows_to_dicts(result)
