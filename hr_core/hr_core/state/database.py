"""Engine and session construction for the HR store.

The URL scheme picks the backend: ``postgresql+asyncpg://`` gets a pooled
engine with server-side timeouts, ``sqlite+aiosqlite://`` is delegated to
:mod:`hr_core.state.sqlite_adapter`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

logger = logging.getLogger(__name__)

# Company ids are uuid4 hex in practice; the pattern is what RLS will accept.
_COMPANY_ID_RE = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")

# Milliseconds.  A stuck webhook write should fail fast so Stripe retries it.
_POSTGRES_SERVER_SETTINGS = {
    "statement_timeout": "30000",
    "lock_timeout": "10000",
}


def get_engine(database_url: str, pool_size: int = 10, max_overflow: int = 20) -> AsyncEngine:
    """Create an async engine for *database_url*.

    ``pool_size`` and ``max_overflow`` only apply to PostgreSQL.
    """
    if database_url.startswith("sqlite"):
        from hr_core.state.sqlite_adapter import get_local_engine, sqlite_path

        return get_local_engine(sqlite_path(database_url))

    engine = create_async_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_timeout=10,
        connect_args={"server_settings": dict(_POSTGRES_SERVER_SETTINGS)},
    )
    logger.info("PostgreSQL engine created (pool_size=%d, max_overflow=%d)", pool_size, max_overflow)
    return engine


def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Rows are read after commit (shift records published to the change feed).
    return async_sessionmaker(engine, expire_on_commit=False)


def _is_sqlite(session: AsyncSession) -> bool:
    return session.get_bind().dialect.name == "sqlite"


async def set_company_context(session: AsyncSession, company_id: str) -> None:
    """Bind ``app.company_id`` for the row-level security policies.

    Scoped to the current transaction (``set_config(..., true)``).  SQLite
    has no RLS, so this does nothing there.
    """
    if _is_sqlite(session):
        return

    if not _COMPANY_ID_RE.match(company_id):
        raise ValueError(f"Invalid company_id: must match {_COMPANY_ID_RE.pattern!r}, got {company_id!r}")

    await session.execute(text("SELECT set_config('app.company_id', :cid, true)"), {"cid": company_id})


@asynccontextmanager
async def get_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Unit of work: commit when the block exits cleanly, roll back otherwise."""
    async with session_factory(engine)() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
