"""Shared fixtures for LASZ HR API tests.

Provides test settings, a mock database session, a real per-test SQLite
store wired into the application's engine globals, seed data with live
session tokens, and an async httpx client bound to the app.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import FastAPI
from hr_api.config import APISettings
from hr_api.dependencies import (
    dispose_engine,
    get_session_factory,
    get_settings,
    init_change_feed,
    init_engine,
)
from hr_api.main import create_app
from hr_api.middleware.login_rate_limiter import LoginRateLimiter
from hr_api.routers.auth import get_login_limiter
from hr_core.state.repository import (
    AuthSessionRepository,
    CompanyRepository,
    EmployeeRepository,
    ProfileRepository,
    ShiftRepository,
    UserRepository,
)
from hr_core.state.sqlite_adapter import create_local_tables
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------


@pytest.fixture()
def test_settings(tmp_path: Path) -> APISettings:
    """Return a settings object backed by a per-test SQLite file."""
    return APISettings(
        host="0.0.0.0",
        port=8000,
        debug=True,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        platform_env="dev",
        cors_origins=["http://localhost:3000"],
        billing_enabled=True,
        stripe_secret_key="sk_test_xxx",
        stripe_webhook_secret="whsec_test_secret",
        stripe_price_id="price_monthly",
        internal_api_token="internal-test-token",
        session_cookie_secure=False,
    )


# ---------------------------------------------------------------------------
# Mock database session
# ---------------------------------------------------------------------------


@pytest.fixture()
def mock_session() -> AsyncMock:
    """Return a mock AsyncSession that behaves like a real SQLAlchemy session.

    ``execute`` returns a result whose ``scalar_one_or_none()`` is ``None``,
    ``scalars().all()`` is ``[]`` and ``rowcount`` is ``1``.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()

    result_mock = MagicMock()
    result_mock.scalar_one_or_none.return_value = None
    result_mock.scalars.return_value.all.return_value = []
    result_mock.rowcount = 1

    session.execute = AsyncMock(return_value=result_mock)
    return session


# ---------------------------------------------------------------------------
# Real SQLite store
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture()
async def session_factory(test_settings: APISettings) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Initialise the application's engine and change feed against SQLite."""
    engine = init_engine(test_settings)
    await create_local_tables(engine)
    init_change_feed()
    yield get_session_factory()
    await dispose_engine()


@dataclass
class Seed:
    company_id: str
    admin_user_id: str
    alice_user_id: str
    alice_employee_id: str
    bob_employee_id: str
    admin_token: str
    alice_token: str
    shift_ids: dict[str, str]


ADMIN_EMAIL = "admin@acme.com"
ADMIN_PASSWORD = "correct-horse"
ALICE_EMAIL = "alice@acme.com"
ALICE_PASSWORD = "alice-password"


@pytest_asyncio.fixture()
async def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seed:
    """One company (``c1``) owned by an admin, two employees and a week of shifts.

    Alice has a login; Bob does not.  Shifts (week of Monday 2 March 2026):
    Alice Mon 09-17 published, Alice Tue 09-17 draft, Bob Wed 10-18 published.
    A second company ``c2`` has one shift of its own.
    """
    async with session_factory() as session:
        users = UserRepository(session)
        admin = await users.create(ADMIN_EMAIL, ADMIN_PASSWORD, role="business_admin")
        alice = await users.create(ALICE_EMAIL, ALICE_PASSWORD)

        companies = CompanyRepository(session)
        await companies.create("Acme Ltd", owner_user_id=admin.id, company_id="c1")
        await companies.create("Other Co", company_id="c2")

        profiles = ProfileRepository(session)
        await profiles.upsert(admin.id, role="business_admin", full_name="Ada Admin", company_id="c1")
        await profiles.upsert(alice.id, role="employee", full_name="Alice", company_id="c1")

        employees = EmployeeRepository(session, "c1")
        e_alice = await employees.create("Alice Archer", department="Kitchen", user_id=alice.id)
        e_bob = await employees.create("Bob Baker", department="Bar")
        e_zed = await EmployeeRepository(session, "c2").create("Zed Zimmer")

        def at(day: int, hour: int) -> datetime:
            return datetime(2026, 3, day, hour, tzinfo=UTC)

        shifts = ShiftRepository(session, "c1")
        shift_ids = {
            "alice_mon": (await shifts.create(e_alice, start_time=at(2, 9), end_time=at(2, 17), published=True)).id,
            "alice_tue": (await shifts.create(e_alice, start_time=at(3, 9), end_time=at(3, 17))).id,
            "bob_wed": (await shifts.create(e_bob, start_time=at(4, 10), end_time=at(4, 18), published=True)).id,
        }
        shift_ids["zed_mon"] = (
            await ShiftRepository(session, "c2").create(e_zed, start_time=at(2, 9), end_time=at(2, 17), published=True)
        ).id

        tokens = AuthSessionRepository(session)
        _, admin_token = await tokens.create(admin.id, ttl=timedelta(hours=1))
        _, alice_token = await tokens.create(alice.id, ttl=timedelta(hours=1))
        await session.commit()

    return Seed(
        company_id="c1",
        admin_user_id=admin.id,
        alice_user_id=alice.id,
        alice_employee_id=e_alice.id,
        bob_employee_id=e_bob.id,
        admin_token=admin_token,
        alice_token=alice_token,
        shift_ids=shift_ids,
    )


# ---------------------------------------------------------------------------
# FastAPI app and client
# ---------------------------------------------------------------------------


@pytest.fixture()
def app(test_settings: APISettings) -> FastAPI:
    """Create the app with test settings and a fresh sign-in rate limiter."""
    application = create_app()
    limiter = LoginRateLimiter()
    application.dependency_overrides[get_settings] = lambda: test_settings
    application.dependency_overrides[get_login_limiter] = lambda: limiter
    return application


@pytest_asyncio.fixture()
async def client(app: FastAPI, session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Yield an async httpx client bound to the test app.

    Uses ASGITransport so requests go directly to the ASGI app without
    opening a real TCP socket.  Lifespan events do not run; the store is
    initialised by :func:`session_factory`.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
