"""Alembic environment: Study Group metadata, URL from application settings."""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from studygroup.config import get_settings
from studygroup.db.base import Base
from studygroup.db import models  # noqa: F401 - registers tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

# Migrations use the sync psycopg2 URL; alembic.ini carries no credentials
DATABASE_URL = get_settings().database_url_sync


def run_migrations_offline() -> None:
    """Emit SQL to stdout instead of executing it (`alembic upgrade --sql`)."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    engine = create_engine(DATABASE_URL, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
