"""Viewer identity: the role variant decided once at session resolution.

Downstream code (rota queries, admin-only endpoints) pattern-matches on the
variant instead of re-reading loosely typed profile rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from hr_core.state.tables import CompanyTable, ProfileTable, UserTable


class ProfileRole(str, Enum):
    """Roles stored on ``users.role`` and ``profiles.role``."""

    BUSINESS_ADMIN = "business_admin"
    EMPLOYEE = "employee"


@dataclass(frozen=True)
class Admin:
    """A business admin: sees every shift of their company."""

    company_id: str
    user_id: str

    @property
    def role(self) -> ProfileRole:
        return ProfileRole.BUSINESS_ADMIN


@dataclass(frozen=True)
class Employee:
    """An employee: sees only their own published shifts."""

    company_id: str
    user_id: str

    @property
    def role(self) -> ProfileRole:
        return ProfileRole.EMPLOYEE


Viewer = Admin | Employee


def resolve_viewer(
    user: UserTable,
    profile: ProfileTable | None,
    company: CompanyTable | None = None,
) -> Viewer | None:
    """Decide the viewer variant for an authenticated user.

    The profile role wins over the user metadata role when both exist.
    The company scope comes from the profile, falling back to the company
    the user owns.  Returns ``None`` when no company scope can be found;
    such a user has nothing to view.
    """
    raw_role = profile.role if profile is not None and profile.role else user.role
    company_id = profile.company_id if profile is not None else None
    if company_id is None and company is not None:
        company_id = company.id
    if company_id is None:
        return None

    if raw_role == ProfileRole.BUSINESS_ADMIN.value:
        return Admin(company_id=company_id, user_id=user.id)
    return Employee(company_id=company_id, user_id=user.id)
