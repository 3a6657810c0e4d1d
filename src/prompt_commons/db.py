"""Database engine and session management."""

import asyncio
from contextlib import asynccontextmanager
from enum import Enum, auto
from pathlib import Path
from typing import AsyncGenerator, Optional

from loguru import logger
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_scoped_session,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from prompt_commons.config import PromptCommonsConfig
from prompt_commons.models import Base

# Module level state
_engine: Optional[AsyncEngine] = None
_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


class DatabaseType(Enum):
    """Types of supported databases."""

    MEMORY = auto()
    FILESYSTEM = auto()

    @classmethod
    def get_db_url(cls, db_path: Path, db_type: "DatabaseType") -> str:
        """Get SQLAlchemy URL for database path."""
        if db_type == cls.MEMORY:
            logger.info("Using in-memory SQLite database")
            return "sqlite+aiosqlite://"

        return f"sqlite+aiosqlite:///{db_path}"  # pragma: no cover


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    """Enable foreign keys and WAL on every new SQLite connection."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
    finally:
        cursor.close()


def _create_engine(db_url: str, db_type: DatabaseType) -> AsyncEngine:
    if db_type == DatabaseType.MEMORY:
        # One shared connection, otherwise every pooled connection opens its own empty database
        engine = create_async_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_async_engine(db_url, connect_args={"check_same_thread": False})

    if db_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _configure_sqlite_connection)
    return engine


def _create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def scoped_session(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """
    Get a scoped session with proper lifecycle management.

    Commits when the block exits cleanly, rolls back and re-raises otherwise.

    Args:
        session_maker: Session maker to create scoped sessions from
    """
    factory = async_scoped_session(session_maker, scopefunc=asyncio.current_task)
    try:
        async with factory() as session:
            yield session
            await session.commit()
    except Exception:
        await factory.rollback()
        raise
    finally:
        await factory.remove()


@asynccontextmanager
async def engine_session_factory(
    db_path: Path,
    db_type: DatabaseType = DatabaseType.MEMORY,
) -> AsyncGenerator[tuple[AsyncEngine, async_sessionmaker[AsyncSession]], None]:
    """Create engine and session factory.

    Note: This is primarily used for testing where we want a fresh database
    for each test. For production use, use get_or_create_db() instead.
    """
    global _engine, _session_maker

    db_url = DatabaseType.get_db_url(db_path, db_type)
    logger.debug(f"Creating engine for db_url: {db_url}")

    _engine = _create_engine(db_url, db_type)
    try:
        _session_maker = _create_session_maker(_engine)
        yield _engine, _session_maker
    finally:
        if _engine:
            await _engine.dispose()
            _engine = None
            _session_maker = None


async def get_or_create_db(
    app_config: PromptCommonsConfig,
    db_type: DatabaseType = DatabaseType.FILESYSTEM,
    ensure_schema: bool = True,
) -> tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:  # pragma: no cover
    """Get or create database engine and session maker."""
    global _engine, _session_maker

    if _engine is None:
        db_url = app_config.database_url or DatabaseType.get_db_url(
            app_config.database_path, db_type
        )
        logger.debug(f"Creating engine for db_url: {db_url}")
        _engine = _create_engine(db_url, db_type)
        _session_maker = _create_session_maker(_engine)

        if ensure_schema:
            async with _engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

    assert _session_maker is not None
    return _engine, _session_maker


async def shutdown_db() -> None:  # pragma: no cover
    """Clean up database connections."""
    global _engine, _session_maker

    if _engine:
        await _engine.dispose()
        _engine = None
        _session_maker = None
