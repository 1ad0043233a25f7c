"""
Alembic Migration Environment
===============================

What:  Runs migrations with the async engine against DATABASE_URL.
How:   The URL goes through the same pool-parameter handling as the app:
       pool options are stripped (asyncpg rejects them) and the asyncpg
       server settings, including search_path, are applied to the
       migration connection.
Who:   `alembic upgrade head` from the backend/ directory.
"""

import asyncio
from logging.config import fileConfig

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine
from alembic import context

from trialdoc.config import settings
from trialdoc.database import Base, split_pool_options, with_pool_defaults

# Registers the tables on Base.metadata for --autogenerate
from trialdoc.models.document import Document  # noqa: F401
from trialdoc.models.user import User  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

if not settings.database_url:
    raise RuntimeError("DATABASE_URL must be set to run migrations")

engine_url, engine_kwargs = split_pool_options(with_pool_defaults(settings.database_url))
connect_args = engine_kwargs.get("connect_args", {})


def run_migrations_offline() -> None:
    """Emit SQL to stdout without connecting."""
    context.configure(
        url=engine_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection):
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    connectable = create_async_engine(
        engine_url,
        poolclass=pool.NullPool,
        connect_args=connect_args,
    )

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


def run_migrations_online() -> None:
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
