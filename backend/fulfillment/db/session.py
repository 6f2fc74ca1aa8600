"""Database engine and session configuration."""

from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

import fulfillment.models  # noqa: F401  # Register all models with SQLModel metadata
from fulfillment.config import settings


def _enable_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy own BEGIN on SQLite so savepoints and locking behave.

    The driver's implicit transaction handling breaks SAVEPOINT; BEGIN IMMEDIATE
    takes the write lock up front so concurrent writers wait on the busy timeout
    instead of failing on lock upgrade.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(database_url: str, **overrides: Any) -> AsyncEngine:
    """Create an async engine with options suited to the database backend."""
    options: dict[str, Any] = {
        "echo": settings.database_echo,
        "future": True,
        "pool_pre_ping": True,
    }
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        options["connect_args"] = {"timeout": 30}
    else:
        options.update(pool_size=5, max_overflow=10, pool_recycle=300)
    options.update(overrides)

    engine = create_async_engine(database_url, **options)
    if is_sqlite:
        _enable_sqlite_transactions(engine)
    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings.database_url)
async_session_maker = build_session_maker(engine)


async def get_session() -> AsyncIterator[AsyncSession]:
    """Dependency that provides an async database session."""
    async with async_session_maker() as session:
        yield session


async def dispose_engine() -> None:
    """Dispose of the engine and release all connections.

    Should be called during application shutdown.
    """
    await engine.dispose()
