"""
Database Session Management

Provides database connection pooling and session management.
"""
import time
from contextlib import contextmanager
from functools import wraps
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event, exc, pool, text
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from src.wholesale_crm.utils.logger import get_logger

logger = get_logger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build create_engine() keyword arguments for a database URL.

    SQLite (local development and tests) uses SQLAlchemy's default pool and
    rejects the queue-pool sizing options.
    """
    options: Dict[str, Any] = {"echo": settings.database_echo}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        return options

    options.update(
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_recycle=settings.database_pool_recycle,
        pool_pre_ping=True,  # Verify connections before using
    )
    return options


# Create database engine with connection pooling
engine = create_engine(settings.database_url, **engine_options(settings.database_url))


@event.listens_for(engine, "connect")
def receive_connect(dbapi_conn, connection_record):
    """Log new database connections."""
    logger.debug("database_connection_established")


@event.listens_for(pool.Pool, "invalidate")
def receive_invalidate(dbapi_conn, connection_record, exception):
    """
    Event listener for connection invalidation.

    Logs when a connection is marked as invalid and removed from pool.
    """
    logger.warning(
        "database_connection_invalidated",
        exception=str(exception) if exception else None
    )


# Create session factory
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Get database session with automatic commit/rollback.

    Usage:
        with get_db_session() as session:
            lead = session.get(Lead, lead_id)

    Yields:
        Database session

    Raises:
        Exception: Re-raises any exception after rollback
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except exc.SQLAlchemyError as e:
        session.rollback()
        logger.error(
            "database_session_rollback",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    except Exception as e:
        session.rollback()
        logger.error(
            "database_session_error",
            error=str(e),
            error_type=type(e).__name__
        )
        raise
    finally:
        session.close()


def check_database(session: Session) -> float:
    """
    Run a trivial query against the database.

    Returns:
        Round-trip time in milliseconds

    Raises:
        SQLAlchemyError: If the database is unreachable
    """
    started = time.perf_counter()
    session.execute(text("SELECT 1"))
    return round((time.perf_counter() - started) * 1000, 2)


def close_connections():
    """
    Close all database connections and dispose of the engine.

    Should be called on application shutdown.
    """
    logger.info("closing_database_connections")
    engine.dispose()


def create_all_tables(bind=None):
    """
    Create all database tables defined in models.

    WARNING: Use Alembic migrations instead in production.
    This is only for testing and initial setup.
    """
    from src.wholesale_crm.db.base import Base, import_all_models

    import_all_models()
    Base.metadata.create_all(bind=bind or engine)
    logger.info("database_tables_created", tables=sorted(Base.metadata.tables))


def drop_all_tables(bind=None):
    """
    Drop all database tables.

    WARNING: This will delete all data! Only use in development/testing.
    """
    from src.wholesale_crm.db.base import Base, import_all_models

    logger.warning("dropping_all_database_tables")
    import_all_models()
    Base.metadata.drop_all(bind=bind or engine)


def with_retry(max_retries: int = None, retry_delay: float = 0.5):
    """
    Decorator to retry database operations on transient failures.

    Args:
        max_retries: Maximum number of attempts (defaults to settings)
        retry_delay: Base delay between attempts in seconds

    Usage:
        @with_retry(max_retries=3)
        def change_status(session, lead_id, status):
            ...
    """
    attempts = max_retries or settings.database_max_retries

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(attempts):
                try:
                    return func(*args, **kwargs)
                except (exc.OperationalError, exc.DisconnectionError) as e:
                    last_exception = e
                    # A failed flush leaves the session unusable until rolled back
                    for arg in args:
                        candidate = arg if isinstance(arg, Session) else getattr(arg, "session", None)
                        if isinstance(candidate, Session):
                            candidate.rollback()
                    if attempt < attempts - 1:
                        logger.warning(
                            "database_operation_retry",
                            operation=func.__name__,
                            attempt=attempt + 1,
                            max_retries=attempts,
                            error=str(e)
                        )
                        time.sleep(retry_delay * (attempt + 1))
                    else:
                        logger.error(
                            "database_operation_failed_after_retries",
                            operation=func.__name__,
                            max_retries=attempts,
                            error=str(e)
                        )

            raise last_exception

        return wrapper
    return decorator
