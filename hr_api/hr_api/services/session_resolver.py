"""Admin sign-in flow: authenticate, gate on role, pick the next step.

Only business admins may sign in here.  Any other role has its freshly
opened session revoked before the 403 goes out, so a rejected sign-in never
leaves a usable session behind.  A signed-in admin is sent to the
dashboard when their company profile is complete and to the profile form
otherwise.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from hr_core.models.identity import Admin, ProfileRole
from hr_core.state.tables import CompanyTable
from sqlalchemy.exc import SQLAlchemyError

from hr_api.services.identity_service import IdentityService, NotBusinessAdminError

logger = logging.getLogger(__name__)

DASHBOARD_PATH = "/dashboard"
COMPANY_PROFILE_PATH = "/company/profile"

PROFILE_FIELDS: tuple[str, ...] = ("address", "phone", "company_email", "paye_ref")


def profile_complete(company: CompanyTable | None) -> bool:
    """True when the company has every profile field filled in."""
    if company is None:
        return False
    for name in PROFILE_FIELDS:
        value = getattr(company, name, None)
        if value is None or not str(value).strip():
            return False
    return True


@dataclass(frozen=True)
class SignInResult:
    next: str
    session_token: str
    viewer: Admin | None


class SessionResolver:
    """Run the admin sign-in flow against an :class:`IdentityService`."""

    def __init__(self, identity: IdentityService) -> None:
        self._identity = identity

    async def sign_in(self, email: str, password: str) -> SignInResult:
        """Sign an admin in.

        Raises
        ------
        InvalidCredentialsError
            Credentials were rejected.
        NotBusinessAdminError
            The account is not a business admin.  Its new session has
            already been revoked.
        """
        user, token = await self._identity.sign_in(email, password)

        if user.role != ProfileRole.BUSINESS_ADMIN.value:
            await self._identity.sign_out(token)
            logger.info("Rejected non-admin sign-in for user %s", user.id)
            raise NotBusinessAdminError()

        # The session row must survive a failed lookup: on PostgreSQL a failed
        # statement aborts the whole transaction.
        await self._identity.commit()
        try:
            company = await self._identity.owned_company(user.id)
        except SQLAlchemyError:
            logger.warning("Company lookup failed for user %s; treating profile as incomplete", user.id, exc_info=True)
            await self._identity.rollback()
            company = None

        next_path = DASHBOARD_PATH if profile_complete(company) else COMPANY_PROFILE_PATH
        viewer = Admin(company_id=company.id, user_id=user.id) if company is not None else None
        return SignInResult(next=next_path, session_token=token, viewer=viewer)
