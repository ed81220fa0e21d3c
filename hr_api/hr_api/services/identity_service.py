"""Identity store: password sign-in and opaque server-side sessions.

Users live in ``users`` with bcrypt password hashes.  A successful sign-in
opens an ``auth_sessions`` row and hands back a random bearer token; only
its SHA-256 hash is stored.  Sign-out revokes the row.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from hr_core.models.identity import Viewer, resolve_viewer
from hr_core.state.repository import (
    AuthSessionRepository,
    CompanyRepository,
    ProfileRepository,
    UserRepository,
)
from hr_core.state.tables import CompanyTable, UserTable
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class AuthError(Exception):
    """Raised on authentication or authorisation failures."""

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidCredentialsError(AuthError):
    def __init__(self, message: str = "Invalid login credentials") -> None:
        super().__init__(message, status_code=401)


class NotBusinessAdminError(AuthError):
    def __init__(self, message: str = "This account is not a business admin.") -> None:
        super().__init__(message, status_code=403)


class IdentityService:
    """Sign-in, sign-out and session lookup.

    Parameters
    ----------
    session:
        An async database session (caller manages the transaction).
    session_ttl:
        Lifetime of a newly issued session.
    """

    def __init__(self, session: AsyncSession, *, session_ttl: timedelta = timedelta(hours=12)) -> None:
        self._session = session
        self._session_ttl = session_ttl
        self._users = UserRepository(session)
        self._sessions = AuthSessionRepository(session)

    async def sign_in(self, email: str, password: str) -> tuple[UserTable, str]:
        """Verify credentials and open a session.

        Returns ``(user, session_token)``.

        Raises
        ------
        InvalidCredentialsError
            Unknown email, wrong password, or a deactivated account.  The
            message does not say which.
        """
        user = await self._users.verify_password(email, password)
        if user is None:
            logger.info("Failed sign-in for %s", email.lower().strip())
            raise InvalidCredentialsError()

        _, token = await self._sessions.create(user.id, ttl=self._session_ttl)
        await self._users.touch_last_login(user.id)
        return user, token

    async def sign_out(self, token: str) -> bool:
        """Revoke the session behind *token*.  Returns ``False`` if none was live."""
        revoked = await self._sessions.revoke(token)
        if revoked:
            logger.debug("Session revoked")
        return revoked

    async def current_user(self, token: str) -> UserTable | None:
        """Resolve a live session token to its active user."""
        auth_session = await self._sessions.get_active(token)
        if auth_session is None:
            return None
        user = await self._users.get_by_id(auth_session.user_id)
        if user is None or not user.is_active:
            return None
        return user

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()

    async def owned_company(self, user_id: str) -> CompanyTable | None:
        return await CompanyRepository(self._session).get_by_owner(user_id)

    async def viewer_for(self, user: UserTable) -> Viewer | None:
        """Decide the viewer variant for *user* from its profile and company."""
        profile = await ProfileRepository(self._session).get(user.id)
        company = None
        if profile is None or profile.company_id is None:
            company = await self.owned_company(user.id)
        return resolve_viewer(user, profile, company)
