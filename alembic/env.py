"""
Alembic Environment Configuration

Migrates the CRM schema (src.wholesale_crm.db.models) against DATABASE_URL
from config.settings. alembic.ini puts the project root on sys.path.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from config.settings import settings
from src.wholesale_crm.db.base import Base, import_all_models

config = context.config
config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

import_all_models()

# Options shared by offline SQL generation and online runs
MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "compare_server_default": True,
    # SQLite cannot ALTER most constraints in place
    "render_as_batch": settings.database_url.startswith("sqlite"),
}


def run_migrations_offline() -> None:
    """Emit the migration SQL to stdout instead of executing it."""
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations over a dedicated, unpooled connection."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
