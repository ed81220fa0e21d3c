"""Shared fixtures for HR core tests.

Repository and rota tests run against a real SQLite file per test so the
actual SQL (joins, ordering, window predicates) is exercised.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import pytest_asyncio
from hr_core.state.repository import (
    CompanyRepository,
    EmployeeRepository,
    ProfileRepository,
    ShiftRepository,
    UserRepository,
)
from hr_core.state.sqlite_adapter import create_local_tables, get_local_engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Monday of the week most fixtures schedule into.
WEEK_MONDAY = datetime(2026, 3, 2, tzinfo=UTC)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    """A UTC moment in March 2026."""
    return datetime(2026, 3, day, hour, minute, tzinfo=UTC)


@pytest_asyncio.fixture()
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    engine = get_local_engine(tmp_path / "state.db")
    await create_local_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture()
async def session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@dataclass
class Seed:
    company_id: str
    other_company_id: str
    admin_user_id: str
    alice_user_id: str
    bob_user_id: str
    alice_employee_id: str
    bob_employee_id: str
    carol_employee_id: str
    shift_ids: dict[str, str]


@pytest_asyncio.fixture()
async def seed(session_factory: async_sessionmaker[AsyncSession]) -> Seed:
    """Two companies, an admin, two employees with logins, one without, and a week of shifts.

    Shifts in company ``c1`` for the week of Monday 2 March 2026:

    ============  =======  ===========================  =========
    key           who      when (UTC)                   published
    ============  =======  ===========================  =========
    alice_mon     Alice    Mon 09:00-17:00              yes
    alice_tue     Alice    Tue 09:00-17:00              no
    bob_wed       Bob      Wed 10:00-18:00              yes
    carol_sun     Carol    Sun 20:00-23:00              yes
    alice_late    Alice    Sun 22:00 - Mon 02:00 (+1w)  yes
    alice_next    Alice    next Mon 09:00-17:00         yes
    ============  =======  ===========================  =========

    Company ``c2`` has one published Monday shift.
    """
    async with session_factory() as session:
        users = UserRepository(session)
        admin = await users.create("admin@acme.test", "correct-horse", role="business_admin")
        alice = await users.create("alice@acme.test", "alice-password")
        bob = await users.create("bob@acme.test", "bob-password")

        companies = CompanyRepository(session)
        await companies.create("Acme Ltd", owner_user_id=admin.id, company_id="c1")
        await companies.create("Other Co", company_id="c2")

        profiles = ProfileRepository(session)
        await profiles.upsert(admin.id, role="business_admin", full_name="Ada Admin", company_id="c1")
        await profiles.upsert(alice.id, role="employee", full_name="Alice", company_id="c1")
        await profiles.upsert(bob.id, role="employee", full_name="Bob", company_id="c1")

        employees = EmployeeRepository(session, "c1")
        e_alice = await employees.create("Alice Archer", department="Kitchen", user_id=alice.id)
        e_bob = await employees.create("Bob Baker", department="Bar", user_id=bob.id)
        e_carol = await employees.create("Carol Cook", department="Kitchen")
        e_zed = await EmployeeRepository(session, "c2").create("Zed Zimmer", department="Kitchen")

        shifts = ShiftRepository(session, "c1")
        shift_ids = {
            "alice_mon": (await shifts.create(e_alice, start_time=at(2, 9), end_time=at(2, 17), published=True)).id,
            "alice_tue": (await shifts.create(e_alice, start_time=at(3, 9), end_time=at(3, 17))).id,
            "bob_wed": (await shifts.create(e_bob, start_time=at(4, 10), end_time=at(4, 18), published=True)).id,
            "carol_sun": (await shifts.create(e_carol, start_time=at(8, 20), end_time=at(8, 23), published=True)).id,
            "alice_late": (
                await shifts.create(e_alice, start_time=at(8, 22), end_time=at(9, 2), published=True)
            ).id,
            "alice_next": (
                await shifts.create(e_alice, start_time=at(9, 9), end_time=at(9, 17), published=True)
            ).id,
        }
        shift_ids["zed_mon"] = (
            await ShiftRepository(session, "c2").create(e_zed, start_time=at(2, 9), end_time=at(2, 17), published=True)
        ).id
        await session.commit()

    return Seed(
        company_id="c1",
        other_company_id="c2",
        admin_user_id=admin.id,
        alice_user_id=alice.id,
        bob_user_id=bob.id,
        alice_employee_id=e_alice.id,
        bob_employee_id=e_bob.id,
        carol_employee_id=e_carol.id,
        shift_ids=shift_ids,
    )
