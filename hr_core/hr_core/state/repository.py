"""Repository layer for the HR state store.

Each repository wraps an :class:`AsyncSession` and exposes the narrow set of
reads and writes the application needs.  Company-scoped repositories take
the ``company_id`` at construction and add it to every predicate, so a
caller can never read or write across companies through them.

Transactions are owned by the caller: repositories ``flush`` but never
``commit``.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hr_core.state.tables import (
    AuthSessionTable,
    CompanyTable,
    EmployeeTable,
    ProfileTable,
    ShiftTable,
    UserTable,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Normalise *value* to an aware UTC datetime (naive values are taken as UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


# ---------------------------------------------------------------------------
# Companies
# ---------------------------------------------------------------------------

_PROFILE_FIELDS: frozenset[str] = frozenset({"company_name", "address", "phone", "company_email", "paye_ref"})


class CompanyRepository:
    """Reads and writes on the ``companies`` table."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        company_name: str,
        *,
        owner_user_id: str | None = None,
        company_id: str | None = None,
        subscription_status: str = "trialing",
        **profile: Any,
    ) -> CompanyTable:
        """Insert a new company (signup)."""
        unknown = set(profile) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown company fields: {sorted(unknown)}")
        row = CompanyTable(
            id=company_id or uuid.uuid4().hex,
            company_name=company_name.strip(),
            owner_user_id=owner_user_id,
            subscription_status=subscription_status,
            **profile,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, company_id: str) -> CompanyTable | None:
        result = await self._session.execute(select(CompanyTable).where(CompanyTable.id == company_id))
        return result.scalar_one_or_none()

    async def get_by_owner(self, owner_user_id: str) -> CompanyTable | None:
        """Return the company owned by *owner_user_id*, if any."""
        result = await self._session.execute(
            select(CompanyTable).where(CompanyTable.owner_user_id == owner_user_id).limit(1)
        )
        return result.scalar_one_or_none()

    async def set_subscription_status(self, company_id: str, status: str) -> bool:
        """Write ``subscription_status`` with a single conditional UPDATE.

        No prior read: concurrent writers converge on whichever update runs
        last.  Returns ``True`` when a row matched *company_id*.
        """
        result = await self._session.execute(
            update(CompanyTable)
            .where(CompanyTable.id == company_id)
            .values(subscription_status=status, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def update_profile(self, company_id: str, **fields: Any) -> CompanyTable | None:
        """Update profile-completeness fields; ``None`` values are left untouched."""
        unknown = set(fields) - _PROFILE_FIELDS
        if unknown:
            raise ValueError(f"Unknown company fields: {sorted(unknown)}")
        row = await self.get(company_id)
        if row is None:
            return None
        for name, value in fields.items():
            if value is not None:
                setattr(row, name, value.strip() if isinstance(value, str) else value)
        await self._session.flush()
        return row


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


class UserRepository:
    """CRUD operations for the ``users`` table.

    Password hashing uses bcrypt.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _hash_password(plaintext: str) -> str:
        import bcrypt

        return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")

    @staticmethod
    def _verify_password(plaintext: str, hashed: str) -> bool:
        import bcrypt

        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # bcrypt refuses secrets over 72 bytes; such a password cannot match.
            return False

    async def create(self, email: str, password: str, *, role: str = "employee") -> UserTable:
        """Create a new user with a hashed password."""
        row = UserTable(
            id=uuid.uuid4().hex,
            email=email.lower().strip(),
            password_hash=self._hash_password(password),
            role=role,
            is_active=True,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get_by_email(self, email: str) -> UserTable | None:
        result = await self._session.execute(select(UserTable).where(UserTable.email == email.lower().strip()))
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> UserTable | None:
        result = await self._session.execute(select(UserTable).where(UserTable.id == user_id))
        return result.scalar_one_or_none()

    async def verify_password(self, email: str, password: str) -> UserTable | None:
        """Validate credentials and return the active user if correct."""
        user = await self.get_by_email(email)
        if user is None or not user.is_active:
            return None
        if not self._verify_password(password, user.password_hash):
            return None
        return user

    async def touch_last_login(self, user_id: str) -> None:
        await self._session.execute(
            update(UserTable)
            .where(UserTable.id == user_id)
            .values(last_login_at=_utcnow())
            .execution_options(synchronize_session=False)
        )


class AuthSessionRepository:
    """Server-side sessions keyed by the SHA-256 hash of an opaque token.

    The plaintext token is returned once from :meth:`create` and is never
    stored.
    """

    _TOKEN_PREFIX = "lsz."

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def _hash_token(plaintext: str) -> str:
        return hashlib.sha256(plaintext.encode("utf-8")).hexdigest()

    async def create(self, user_id: str, *, ttl: timedelta) -> tuple[AuthSessionTable, str]:
        """Open a session for *user_id*.  Returns ``(row, plaintext_token)``."""
        plaintext = f"{self._TOKEN_PREFIX}{secrets.token_urlsafe(32)}"
        now = _utcnow()
        row = AuthSessionTable(
            id=uuid.uuid4().hex,
            user_id=user_id,
            token_hash=self._hash_token(plaintext),
            created_at=now,
            expires_at=now + ttl,
        )
        self._session.add(row)
        await self._session.flush()
        return row, plaintext

    async def get_active(self, plaintext: str) -> AuthSessionTable | None:
        """Return the live (not revoked, not expired) session for a token."""
        stmt = select(AuthSessionTable).where(
            AuthSessionTable.token_hash == self._hash_token(plaintext),
            AuthSessionTable.revoked_at.is_(None),
            AuthSessionTable.expires_at > _utcnow(),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def revoke(self, plaintext: str) -> bool:
        """Revoke the session for *plaintext*.  Returns ``True`` if one was live."""
        result = await self._session.execute(
            update(AuthSessionTable)
            .where(
                AuthSessionTable.token_hash == self._hash_token(plaintext),
                AuthSessionTable.revoked_at.is_(None),
            )
            .values(revoked_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0


class ProfileRepository:
    """Reads and writes on ``profiles``."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: str) -> ProfileTable | None:
        result = await self._session.execute(select(ProfileTable).where(ProfileTable.user_id == user_id))
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: str,
        *,
        role: str,
        full_name: str | None = None,
        company_id: str | None = None,
    ) -> ProfileTable:
        row = await self.get(user_id)
        if row is None:
            row = ProfileTable(user_id=user_id, role=role, full_name=full_name, company_id=company_id)
            self._session.add(row)
        else:
            row.role = role
            if full_name is not None:
                row.full_name = full_name
            if company_id is not None:
                row.company_id = company_id
        await self._session.flush()
        return row


# ---------------------------------------------------------------------------
# Workforce (company-scoped)
# ---------------------------------------------------------------------------


class EmployeeRepository:
    """Company-scoped access to ``employees``."""

    def __init__(self, session: AsyncSession, company_id: str) -> None:
        self._session = session
        self._company_id = company_id

    async def create(
        self,
        full_name: str,
        *,
        department: str | None = None,
        user_id: str | None = None,
    ) -> EmployeeTable:
        row = EmployeeTable(
            id=uuid.uuid4().hex,
            company_id=self._company_id,
            user_id=user_id,
            full_name=full_name.strip(),
            department=department,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, employee_id: str) -> EmployeeTable | None:
        result = await self._session.execute(
            select(EmployeeTable).where(
                EmployeeTable.company_id == self._company_id,
                EmployeeTable.id == employee_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_name(self) -> list[EmployeeTable]:
        """All employees of the company ordered by full name."""
        result = await self._session.execute(
            select(EmployeeTable)
            .where(EmployeeTable.company_id == self._company_id)
            .order_by(EmployeeTable.full_name.asc())
        )
        return list(result.scalars().all())


_SHIFT_MUTABLE_FIELDS: frozenset[str] = frozenset(
    {"department", "start_time", "end_time", "location", "role", "published", "notes"}
)


class ShiftRepository:
    """Company-scoped access to ``shifts``."""

    def __init__(self, session: AsyncSession, company_id: str) -> None:
        self._session = session
        self._company_id = company_id

    async def create(
        self,
        employee: EmployeeTable,
        *,
        start_time: datetime,
        end_time: datetime,
        department: str | None = None,
        location: str | None = None,
        role: str | None = None,
        published: bool = False,
        notes: str | None = None,
    ) -> ShiftTable:
        """Insert a shift for *employee*.

        ``department`` defaults to the employee's current department and is
        stored as a copy: later department moves do not rewrite old shifts.
        """
        if employee.company_id != self._company_id:
            raise PermissionError("Employee belongs to a different company")
        row = ShiftTable(
            id=uuid.uuid4().hex,
            company_id=self._company_id,
            employee_id=employee.id,
            assigned_user_id=employee.user_id,
            department=department if department is not None else employee.department,
            start_time=as_utc(start_time),
            end_time=as_utc(end_time),
            location=location,
            role=role,
            published=published,
            notes=notes,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, shift_id: str) -> ShiftTable | None:
        result = await self._session.execute(
            select(ShiftTable).where(
                ShiftTable.company_id == self._company_id,
                ShiftTable.id == shift_id,
            )
        )
        return result.scalar_one_or_none()

    async def update(self, shift_id: str, **fields: Any) -> ShiftTable | None:
        """Apply *fields* to a shift.  Returns ``None`` if it does not exist."""
        unknown = set(fields) - _SHIFT_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown shift fields: {sorted(unknown)}")
        row = await self.get(shift_id)
        if row is None:
            return None
        for name, value in fields.items():
            if name in ("start_time", "end_time") and value is not None:
                value = as_utc(value)
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, shift_id: str) -> bool:
        result = await self._session.execute(
            delete(ShiftTable)
            .where(
                ShiftTable.company_id == self._company_id,
                ShiftTable.id == shift_id,
            )
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def list_in_window(
        self,
        window_start: datetime,
        window_end: datetime,
        *,
        assigned_user_id: str | None = None,
        published_only: bool = False,
    ) -> list[tuple[ShiftTable, str | None]]:
        """Shifts starting at/after *window_start* and ending at/before *window_end*.

        Returns ``(shift, employee_full_name)`` pairs ordered by start time.
        """
        stmt = (
            select(ShiftTable, EmployeeTable.full_name)
            .outerjoin(EmployeeTable, EmployeeTable.id == ShiftTable.employee_id)
            .where(
                ShiftTable.company_id == self._company_id,
                ShiftTable.start_time >= as_utc(window_start),
                ShiftTable.end_time <= as_utc(window_end),
            )
        )
        if assigned_user_id is not None:
            stmt = stmt.where(ShiftTable.assigned_user_id == assigned_user_id)
        if published_only:
            stmt = stmt.where(ShiftTable.published.is_(True))
        stmt = stmt.order_by(ShiftTable.start_time.asc(), ShiftTable.id.asc())

        result = await self._session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
