"""
Database engine and session management.

One async engine per process, built from `settings.database_url`. SQLite
does not enforce foreign keys unless asked, so SQLite connections switch
them on; deleting a requirement expression node then cascades to its
children.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from rankforge.config import settings
from rankforge.models.db import Base


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine for `url`."""
    engine = create_async_engine(url, echo=echo, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provide a session that commits on success and rolls back on error.

    Usage:
        async for session in get_session():
            await append_advance(session, character_id, record)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError:
            await session.rollback()
            raise


async def init_db(target: AsyncEngine | None = None) -> None:
    """Create all tables (on the default engine unless `target` is given)."""
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_db(target: AsyncEngine | None = None) -> None:
    """
    Drop all tables.

    WARNING: Destroys all data. Use only for testing.
    """
    async with (target or engine).begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
