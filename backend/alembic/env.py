"""Alembic environment — runs LanpApp migrations through the async engine.

The URL comes from Settings (DATABASE_URL or .env); sqlalchemy.url in
alembic.ini is only used when no environment value is set, e.g. when
generating SQL offline against the docker-compose database.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

from alembic import context

import lanpapp.models  # noqa: F401  (registers every table on Base.metadata)
from lanpapp.config import LOCAL_DATABASE_URL, get_settings
from lanpapp.db.base import Base

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def _database_url() -> str:
    url = get_settings().database_url
    if url == LOCAL_DATABASE_URL:
        return config.get_main_option("sqlalchemy.url") or url
    return url


def _migrate(connection) -> None:
    context.configure(connection=connection, target_metadata=Base.metadata)
    with context.begin_transaction():
        context.run_migrations()


async def _migrate_online() -> None:
    engine = create_async_engine(_database_url(), poolclass=pool.NullPool)
    try:
        async with engine.connect() as connection:
            await connection.run_sync(_migrate)
    finally:
        await engine.dispose()


if context.is_offline_mode():
    context.configure(
        url=_database_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    asyncio.run(_migrate_online())
