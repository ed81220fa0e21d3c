"""Local SQLite backend (``sqlite+aiosqlite``).

Used for the dev server and the test-suite.  It shares the ORM tables with
PostgreSQL, but there is no row-level security, so the repositories'
explicit ``company_id`` predicates are the only company scoping, and
timestamps come back naive (see :func:`hr_core.state.repository.as_utc`).
"""

from __future__ import annotations

import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(".lasz") / "hr.db"
MEMORY = ":memory:"

# WAL lets the live rota re-fetch while a shift write is in flight.
_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA foreign_keys=ON",
    "PRAGMA synchronous=NORMAL",
)


def sqlite_path(database_url: str) -> Path | str:
    """Extract the file path from a ``sqlite+aiosqlite:///...`` URL."""
    _, sep, path = database_url.partition("///")
    if not sep or not path or path == MEMORY:
        return MEMORY
    return Path(path)


def get_local_engine(db_path: Path | str = DEFAULT_DB_PATH) -> AsyncEngine:
    """Return an aiosqlite engine for *db_path*, creating parent directories."""
    if db_path == MEMORY:
        url = f"sqlite+aiosqlite:///{MEMORY}"
    else:
        path = Path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        url = f"sqlite+aiosqlite:///{path}"

    engine = create_async_engine(url, connect_args={"check_same_thread": False})

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn: object, _record: object) -> None:
        cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
        for pragma in _PRAGMAS:
            cursor.execute(pragma)
        cursor.close()

    logger.info("Using local SQLite database at %s", db_path)
    return engine


async def create_local_tables(engine: AsyncEngine) -> None:
    """Create the HR tables if they do not exist yet."""
    from hr_core.state.tables import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Local schema ready (%d tables)", len(Base.metadata.tables))
