"""
Create Database Tables Using SQLAlchemy

This script creates all CRM tables directly using SQLAlchemy's create_all()
method. This bypasses Alembic migrations and is useful for local SQLite
databases and throwaway development environments.

Usage:
    python scripts/create_database_tables.py [--reset]
"""
import argparse
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

import sqlalchemy as sa

from src.wholesale_crm.db.base import Base
from src.wholesale_crm.db.session import engine, create_all_tables, drop_all_tables
from src.wholesale_crm.utils.logger import setup_logging, get_logger

logger = get_logger(__name__)


def main():
    """Create all database tables."""
    parser = argparse.ArgumentParser(description="Create the Wholesale CRM tables")
    parser.add_argument("--reset", action="store_true", help="Drop existing CRM tables first")
    args = parser.parse_args()

    setup_logging()
    logger.info("database_table_creation_started", url=engine.url.render_as_string(hide_password=True))

    existing = sa.inspect(engine).get_table_names()
    if existing and args.reset:
        logger.warning("dropping_existing_tables", count=len(existing))
        drop_all_tables()
        # Dispose of engine connections to clear any cached metadata
        engine.dispose()

    create_all_tables()

    # Verify tables were created
    tables = sa.inspect(engine).get_table_names()
    missing = sorted(set(Base.metadata.tables) - set(tables))
    if missing:
        logger.error("tables_missing_after_create", missing=missing)
        sys.exit(1)

    logger.info("database_setup_complete", tables=sorted(tables))


if __name__ == "__main__":
    main()
