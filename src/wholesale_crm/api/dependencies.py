"""
FastAPI Dependencies

Provides dependency injection for database sessions, the acting
user and the clock.
"""
from typing import Generator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.db.session import SessionLocal
from src.wholesale_crm.utils.time_utils import Clock, business_now


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Mutating endpoints commit explicitly; anything left uncommitted is
    rolled back when the session closes.

    Yields:
        SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def acting_user_id(header_value: Optional[str]) -> Optional[int]:
    """
    User id carried by a raw ``X-User-Id`` header value.

    Absent headers resolve to the configured default user. Malformed
    values resolve to None; ``get_current_user_id`` rejects them with 422.
    """
    if header_value is None:
        return settings.default_user_id
    try:
        return int(header_value)
    except ValueError:
        return None


def get_current_user_id(x_user_id: Optional[int] = Header(None)) -> int:
    """
    Acting user for the request.

    Taken from the ``X-User-Id`` header; falls back to the configured
    default user. Authentication is handled upstream. The request
    middleware binds the same id into the log context.
    """
    return x_user_id if x_user_id is not None else settings.default_user_id


def get_clock() -> Clock:
    """
    Clock dependency.

    Override in tests to pin "now".
    """
    return business_now
