"""State persistence layer (PostgreSQL in production, SQLite locally)."""

from hr_core.state.changes import ChangeEvent, ChangeFeed, ChangeKind, Subscription
from hr_core.state.database import get_engine, get_session, set_company_context
from hr_core.state.repository import (
    AuthSessionRepository,
    CompanyRepository,
    EmployeeRepository,
    ProfileRepository,
    ShiftRepository,
    UserRepository,
)

__all__ = [
    "AuthSessionRepository",
    "ChangeEvent",
    "ChangeFeed",
    "ChangeKind",
    "CompanyRepository",
    "EmployeeRepository",
    "ProfileRepository",
    "ShiftRepository",
    "Subscription",
    "UserRepository",
    "get_engine",
    "get_session",
    "set_company_context",
]
