# This project was developed with assistance from AI tools.
"""Alembic environment.

Migrations run synchronously (psycopg2). The URL comes from the ini file
when set (tests point it at a container), otherwise from DATABASE_URL with
the asyncpg driver swapped out.
"""

from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from db.config import db_settings
from db.database import Base
from db import models  # noqa: F401  registers tables on Base.metadata

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option(
        "sqlalchemy.url",
        db_settings.DATABASE_URL.replace("+asyncpg", "+psycopg2"),
    )

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
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
