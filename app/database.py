# app/database.py
"""
Database connection, session management, and table creation.
Uses SQLAlchemy (PostgreSQL in production, SQLite for local runs and tests).
The session is the explicit storage handle every record-store call receives.
"""

from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, InterfaceError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import settings
from app.exceptions import StorageUnavailableError
from app.utils.logger import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,   # Auto-reconnect if DB connection drops
        "pool_size": 10,
        "max_overflow": 20,
    }


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,                  # Set True to log all SQL queries (debug only)
    **_engine_options(settings.DATABASE_URL),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency — yields a DB session and closes it after request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """
    Creates all DB tables on startup. Safe to call multiple times.
    Import all models here so SQLAlchemy knows about them.
    """
    from app.models.vehicle import Vehicle     # noqa
    from app.models.audit_log import AuditLog  # noqa

    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def storage_guard(db, operation: str):
    """
    Map connection-level failures to StorageUnavailableError.
    Rolls the session back so the handle stays usable for the caller.
    """
    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError) as e:
        logger.warning(f"[Database] Cannot {operation}: database not available ({e.__class__.__name__})")
        db.rollback()
        raise StorageUnavailableError(f"Storage unavailable while trying to {operation}") from e
