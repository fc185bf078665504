"""Alembic environment configuration."""

import sys
from pathlib import Path
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

# Add the parent directory to Python path so we can import internhub
sys.path.insert(0, str(Path(__file__).parent.parent))

from internhub.config import settings
from internhub.db.base import Base

# Import all models to ensure they are registered
from internhub import models  # noqa

# Alembic Config object
config = context.config


def _sync_url(database_url: str) -> str:
    """Alembic runs synchronously: swap async drivers for their sync counterparts."""
    if database_url.startswith("postgresql+asyncpg://"):
        database_url = database_url.replace("postgresql+asyncpg://", "postgresql://")
        # asyncpg uses 'ssl=...', psycopg2 uses 'sslmode=...'
        for asyncpg_opt, psycopg_opt in (
            ("ssl=false", "sslmode=disable"),
            ("ssl=true", "sslmode=require"),
            ("ssl=require", "sslmode=require"),
        ):
            database_url = database_url.replace(f"?{asyncpg_opt}", f"?{psycopg_opt}")
            database_url = database_url.replace(f"&{asyncpg_opt}", f"&{psycopg_opt}")
    elif database_url.startswith("sqlite+aiosqlite://"):
        database_url = database_url.replace("sqlite+aiosqlite://", "sqlite://")
    return database_url


config.set_main_option("sqlalchemy.url", _sync_url(str(settings.DATABASE_URL)))

# Interpret the config file for Python logging
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata
target_metadata = Base.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
