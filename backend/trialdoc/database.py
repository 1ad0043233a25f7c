"""
TrialDoc Backend - Connection Manager
=======================================

What:  Builds the data-store connection configuration and owns the process's
       single SQLAlchemy AsyncEngine, its session factory, and its teardown.
How:   1. `with_pool_defaults()` fills in pooling/timeout query parameters the
          caller did not specify.
       2. `split_pool_options()` turns those parameters into SQLAlchemy pool
          options and asyncpg server settings (asyncpg rejects them in the URL).
       3. `ConnectionManager` lazily creates the engine once, with the lifecycle
          policy of the deployment mode, and releases it on shutdown.
Who:   Created by `create_app()` and stored on `app.state`; handlers receive it
       (or a session) through the FastAPI dependencies at the bottom of this
       module.

Connection Pooling Defaults (only added when absent from DATABASE_URL):
    connection_limit=5                         → pool_size=5, max_overflow=0
    pool_timeout=10                            → pool_timeout=10 (seconds)
    schema=public                              → search_path=public
    statement_timeout=30s                      → server setting
    idle_in_transaction_session_timeout=30s    → server setting

Lifecycle Policies:
    development:  persistent engine cached for the life of the process,
                  SQL echo when LOG_LEVEL=DEBUG.
    production:   persistent engine cached for the life of the process,
                  10s connect / command timeouts, and a teardown hook that
                  issues DEALLOCATE ALL before disposing the pool.

Single writer on creation:
    The engine is built synchronously inside the `engine` property, with no
    await between the check and the assignment, so concurrent requests on the
    event loop can never create two engines.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Awaitable, Callable, Dict, List, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from trialdoc.config import DeploymentMode, Settings
from trialdoc.exceptions import ConfigurationError
from trialdoc.retry import DatabaseRetry

logger = logging.getLogger(__name__)


# ── Pool Parameter Defaults ───────────────────────────────────────────────
POOL_DEFAULTS: Dict[str, str] = {
    "connection_limit": "5",
    "pool_timeout": "10",
    "schema": "public",
    "statement_timeout": "30s",
    "idle_in_transaction_session_timeout": "30s",
}

# Driver-level timeouts applied in production (seconds)
PRODUCTION_CONNECT_TIMEOUT = 10
PRODUCTION_COMMAND_TIMEOUT = 10


def _parse_url(database_url: str) -> URL:
    try:
        return make_url(database_url)
    except ArgumentError as e:
        raise ConfigurationError(
            message="DATABASE_URL is not a valid database URL",
            context={"error": str(e)},
        )


def _last(value: Any) -> str:
    # Repeated query keys arrive as tuples; the last one wins.
    if isinstance(value, tuple):
        return value[-1]
    return value


def with_pool_defaults(base_url: Optional[str]) -> Optional[str]:
    """
    Add default pooling/timeout parameters that the URL does not already carry.

    Parameters already present are left untouched. A missing URL is returned
    as-is so the caller sees the absence, instead of failing here.

    >>> with_pool_defaults("postgresql+asyncpg://u:p@db/app?connection_limit=20")
    'postgresql+asyncpg://u:p@db/app?connection_limit=20&pool_timeout=10&...'
    """
    if not base_url:
        return base_url

    url = _parse_url(base_url)
    missing = {key: value for key, value in POOL_DEFAULTS.items() if key not in url.query}
    if not missing:
        return base_url
    return url.update_query_dict(missing).render_as_string(hide_password=False)


def split_pool_options(database_url: str) -> Tuple[URL, Dict[str, Any]]:
    """
    Separate pool parameters from the URL and translate them to engine options.

    Returns:
        (url without the pool parameters, kwargs for create_async_engine)

    Only PostgreSQL URLs get pool sizing; only asyncpg gets server settings.
    Other backends (e.g. sqlite in tests) just have the parameters stripped.
    """
    url = _parse_url(database_url)
    query = dict(url.query)
    options = {key: _last(query.pop(key)) for key in POOL_DEFAULTS if key in query}
    url = url.set(query=query)

    engine_kwargs: Dict[str, Any] = {}
    if url.get_backend_name() != "postgresql":
        return url, engine_kwargs

    try:
        if "connection_limit" in options:
            engine_kwargs["pool_size"] = int(options["connection_limit"])
            # connection_limit is a hard cap, not a baseline
            engine_kwargs["max_overflow"] = 0
        if "pool_timeout" in options:
            engine_kwargs["pool_timeout"] = float(options["pool_timeout"])
    except ValueError as e:
        raise ConfigurationError(
            message="DATABASE_URL pool parameters must be numeric",
            context={"error": str(e)},
        )

    if url.get_driver_name() == "asyncpg":
        server_settings: Dict[str, str] = {}
        if "schema" in options:
            server_settings["search_path"] = options["schema"]
        for key in ("statement_timeout", "idle_in_transaction_session_timeout"):
            if key in options:
                server_settings[key] = options[key]
        if server_settings:
            engine_kwargs["connect_args"] = {"server_settings": server_settings}

    return url, engine_kwargs


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class to register with the shared metadata
    (used by Alembic for migrations).
    """
    pass


# ══════════════════════════════════════════════════════════════════════════
# Connection Manager
# ══════════════════════════════════════════════════════════════════════════

class ConnectionManager:
    """
    Owns the process-wide engine for one deployment mode.

    Args:
        database_url: Base connection URL (pool defaults are added).
        mode: DeploymentMode selecting the lifecycle policy.
        engine_factory: Callable building the engine (create_async_engine).
        echo_sql: Log every statement (development only).
        retry_max_attempts / retry_base_delay: DatabaseRetry policy.

    Attributes:
        configured_url: The URL after pool defaults were applied.
        retry: DatabaseRetry bound to reset_statement_cache().
    """

    def __init__(
        self,
        database_url: Optional[str],
        mode: DeploymentMode = DeploymentMode.DEVELOPMENT,
        *,
        engine_factory: Callable[..., AsyncEngine] = create_async_engine,
        echo_sql: bool = False,
        retry_max_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ):
        self.mode = DeploymentMode(mode)
        self.configured_url = with_pool_defaults(database_url)
        self.echo_sql = echo_sql
        self._engine_factory = engine_factory
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._teardown_hooks: List[Callable[[], Awaitable[None]]] = []
        self.retry = DatabaseRetry(
            max_attempts=retry_max_attempts,
            base_delay=retry_base_delay,
            reset_statement_cache=self.reset_statement_cache,
        )

    # ── Engine lifecycle ──────────────────────────────────────────────────
    @property
    def has_engine(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        """The cached engine, created on first access."""
        if self._engine is None:
            self._engine = self._create_engine()
        return self._engine

    def _create_engine(self) -> AsyncEngine:
        if not self.configured_url:
            raise ConfigurationError(
                message="DATABASE_URL is not configured",
                context={"mode": self.mode.value},
            )

        url, engine_kwargs = split_pool_options(self.configured_url)
        engine_kwargs["pool_pre_ping"] = True

        if self.mode == DeploymentMode.PRODUCTION:
            if url.get_driver_name() == "asyncpg":
                connect_args = engine_kwargs.setdefault("connect_args", {})
                connect_args["timeout"] = PRODUCTION_CONNECT_TIMEOUT
                connect_args["command_timeout"] = PRODUCTION_COMMAND_TIMEOUT
            self._teardown_hooks.append(self._release_prepared_statements)
        else:
            engine_kwargs["echo"] = self.echo_sql

        engine = self._engine_factory(url, **engine_kwargs)
        logger.info(
            "Database engine created (mode=%s, host=%s, database=%s)",
            self.mode.value,
            url.host,
            url.database,
        )
        return engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        # expire_on_commit=False keeps attributes readable after commit
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Unit-of-work scope: commit on success, roll back on any error.

        The connection returns to the pool when the block exits.
        """
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # ── Maintenance ───────────────────────────────────────────────────────
    async def reset_statement_cache(self) -> None:
        """
        Drop all server-side prepared statements on a pooled connection.

        The connection is invalidated afterwards so it never returns to the
        pool with a driver-side statement cache pointing at deallocated names.
        """
        async with self.engine.connect() as conn:
            await conn.execute(text("DEALLOCATE ALL"))
            await conn.invalidate()

    async def _release_prepared_statements(self) -> None:
        try:
            await self.reset_statement_cache()
        except Exception as e:
            logger.info("Prepared statement cleanup: %s", e)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        """
        Release the engine.

        Runs the teardown hooks registered by the lifecycle policy, then
        disposes the pool. Safe to call more than once or before first use.
        """
        if self._engine is None:
            return
        for hook in self._teardown_hooks:
            await hook()
        self._teardown_hooks.clear()
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed (mode=%s)", self.mode.value)


def build_connection_manager(config: Settings) -> ConnectionManager:
    """Creates the ConnectionManager described by the application settings."""
    return ConnectionManager(
        config.database_url,
        config.environment,
        echo_sql=config.log_level == "DEBUG",
        retry_max_attempts=config.db_retry_max_attempts,
        retry_base_delay=config.db_retry_base_delay,
    )


# ── FastAPI Dependencies ──────────────────────────────────────────────────
def get_connection_manager(request: Request) -> ConnectionManager:
    """Returns the ConnectionManager owned by the running application."""
    return request.app.state.connection_manager


async def get_db_session(
    manager: ConnectionManager = Depends(get_connection_manager),
) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Commits when the handler returns, rolls back when it raises.

    Example usage in a route:
        @router.get("/documents")
        async def list_documents(db: AsyncSession = Depends(get_db_session)):
            ...
    """
    async with manager.session() as session:
        yield session
