"""Alembic environment for the HR store.

The URL comes from ``ALEMBIC_DATABASE_URL``, then the application's own
``API_DATABASE_URL``, then ``alembic.ini``.  Async driver URLs are mapped to
their synchronous counterparts because Alembic runs on a sync connection:
asyncpg becomes psycopg and aiosqlite becomes the stdlib sqlite driver.
"""

from __future__ import annotations

import logging
import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from hr_core.state.tables import Base

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

_SYNC_DRIVERS = (
    ("postgresql+asyncpg://", "postgresql+psycopg://"),
    ("postgresql://", "postgresql+psycopg://"),
    ("sqlite+aiosqlite://", "sqlite://"),
)


def sync_database_url() -> str:
    url = (
        os.environ.get("ALEMBIC_DATABASE_URL")
        or os.environ.get("API_DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
        or ""
    )
    for async_prefix, sync_prefix in _SYNC_DRIVERS:
        if url.startswith(async_prefix):
            url = sync_prefix + url[len(async_prefix) :]
            break
    # asyncpg spells it ssl=, libpq spells it sslmode=.
    return url.replace("ssl=require", "sslmode=require")


def _configure_kwargs(url: str) -> dict[str, object]:
    # SQLite cannot ALTER most constraints in place.
    return {
        "target_metadata": target_metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def run_migrations_offline() -> None:
    url = sync_database_url()
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **_configure_kwargs(url))

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = sync_database_url()
    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = url
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    logger.info("Migrating %s", connectable.url.render_as_string(hide_password=True))
    with connectable.connect() as connection:
        context.configure(connection=connection, **_configure_kwargs(url))
        with context.begin_transaction():
            context.run_migrations()

    connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
