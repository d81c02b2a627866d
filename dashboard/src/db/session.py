"""
Async database engine and session factory.

Uses the SQLAlchemy 2.x async engine with the aiosqlite driver. Every new
SQLite connection is switched to WAL journal mode with ``synchronous=NORMAL``
so the HTTP handlers can read history while the poll loop appends samples.

CHANGELOG:
- 2026-10-03: Initial creation
"""

from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def _set_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    """Enable WAL mode on each new SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine for *database_url*.

    For file-backed SQLite URLs the parent directory is created if needed
    and the WAL pragmas are registered on connect.

    Args:
        database_url: SQLAlchemy async URL, e.g.
            ``sqlite+aiosqlite:///data/energy-history.db``.

    Returns:
        AsyncEngine: Configured async engine.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(database_url, echo=False)
    if url.get_backend_name() == "sqlite":
        event.listen(engine.sync_engine, "connect", _set_sqlite_pragmas)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
