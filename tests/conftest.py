"""
Shared pytest configuration.

Point the application at an in-memory SQLite database and disable Redis
before any project module builds its engine or cache client.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.wholesale_crm.db.base import Base, import_all_models

# Fixed reference time used by clock-dependent tests (a Wednesday, mid-day)
FIXED_NOW = datetime(2025, 3, 12, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture(scope="function")
def test_db():
    """Create an in-memory SQLite database for testing."""
    import_all_models()
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    Session = sessionmaker(bind=engine, expire_on_commit=False)
    session = Session()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()
