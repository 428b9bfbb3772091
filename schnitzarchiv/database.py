"""Async engine and session factory."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from schnitzarchiv.config import get_settings


def resolve_database_url(db_url: str) -> str:
    """
    Force the aiosqlite driver for SQLite and anchor relative files at the cwd.

    The directory of a file database is created if missing.
    """
    url = make_url(db_url)
    if url.get_backend_name() != "sqlite":
        return db_url

    url = url.set(drivername="sqlite+aiosqlite")
    if url.database and url.database != ":memory:":
        db_file = Path(url.database)
        if not db_file.is_absolute():
            db_file = (Path.cwd() / db_file).resolve()
        db_file.parent.mkdir(parents=True, exist_ok=True)
        url = url.set(database=str(db_file))

    return url.render_as_string(hide_password=False)


def _on_sqlite_connect(dbapi_connection, connection_record):
    # WAL lets the public API read while a pipeline run writes
    cursor = dbapi_connection.cursor()
    for pragma in (
        "journal_mode=WAL",
        "busy_timeout=60000",
        "synchronous=NORMAL",
        "temp_store=MEMORY",
    ):
        cursor.execute(f"PRAGMA {pragma}")
    cursor.close()


@lru_cache
def get_engine() -> AsyncEngine:
    """Get cached async engine instance."""
    settings = get_settings()
    db_url = resolve_database_url(settings.database_url)

    if not db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=settings.debug)

    engine = create_async_engine(
        db_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False, "timeout": 60},
    )
    event.listen(engine.sync_engine, "connect", _on_sqlite_connect)
    return engine


@lru_cache
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Session factory bound to the engine.

    Objects stay loaded after commit. Services re-read rows explicitly where
    another writer may have changed them.
    """
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Create all tables that do not exist yet."""
    # Register table models with SQLModel.metadata
    from schnitzarchiv import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides an async database session."""
    async with get_session_factory()() as session:
        yield session


def async_session_maker() -> AsyncSession:
    """New session for code outside FastAPI dependencies; use as ``async with``."""
    return get_session_factory()()
