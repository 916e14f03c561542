# orderdesk/config/database.py
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.engine import Engine
import sqlite3
import logging
from typing import Any, Dict, Generator
from .settings import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def create_db_engine(database_url: str, **overrides: Any) -> Engine:
    """
    Build an engine for the given URL.

    SQLite gets a busy timeout so concurrent writers queue on the database
    lock instead of failing immediately. Pool sizing only applies to server
    databases.
    """
    options: Dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": settings.DEBUG,
    }
    if database_url.startswith("sqlite"):
        options["connect_args"] = {
            "check_same_thread": False,
            "timeout": settings.DB_BUSY_TIMEOUT,
        }
    else:
        options.update(
            pool_recycle=300,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
        )
    options.update(overrides)
    return create_engine(database_url, **options)


# Database engine configuration
engine = create_db_engine(settings.DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models
Base = declarative_base()

# Database session dependency
def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.
    Creates a new database session for each request.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database session error: {e}")
        db.rollback()
        raise
    finally:
        db.close()

# SQLite-specific configuration
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign keys and WAL, and hand transaction control to SQLAlchemy."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        # pysqlite must not emit its own BEGIN; see begin_immediate below
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

@event.listens_for(Engine, "begin")
def begin_immediate(conn):
    """Take the SQLite write lock up front so read-then-write sections serialize."""
    if conn.dialect.name == "sqlite":
        conn.exec_driver_sql("BEGIN IMMEDIATE")

# Database health check
def check_database_health(bind: Engine = None) -> bool:
    """Check if database connection is healthy."""
    try:
        with (bind or engine).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False

# Database initialization
def init_database(bind: Engine = None):
    """Initialize database with tables."""
    # model modules must be imported for their tables to register on Base
    from .. import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

# Database cleanup
def cleanup_database():
    """Clean up database connections."""
    try:
        engine.dispose()
        logger.info("Database connections cleaned up")
    except Exception as e:
        logger.error(f"Database cleanup failed: {e}")

# Transaction context manager
class DatabaseTransaction:
    """
    Context manager for database transactions.

    Commits on a clean exit and rolls back on any exception, cancellation
    included. A failed commit is rolled back before the error propagates.
    """

    def __init__(self, db: Session):
        self.db = db

    def __enter__(self):
        return self.db

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.db.rollback()
            return False
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return False

# Export commonly used objects
__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "create_db_engine",
    "get_db",
    "init_database",
    "cleanup_database",
    "check_database_health",
    "DatabaseTransaction",
]
