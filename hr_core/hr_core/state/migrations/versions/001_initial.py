"""Initial schema: companies, identity, profiles, employees, shifts.

Revision ID: 001
Revises: None
Create Date: 2026-09-01 00:00:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    # ------------------------------------------------------------------
    # companies
    # ------------------------------------------------------------------
    op.create_table(
        "companies",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("company_name", sa.String(256), nullable=False),
        sa.Column("owner_user_id", sa.String(64), nullable=True),
        sa.Column("subscription_status", sa.String(32), nullable=False, server_default="trialing"),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("company_email", sa.String(320), nullable=True),
        sa.Column("paye_ref", sa.String(64), nullable=True),
        sa.Column("stripe_customer_id", sa.String(128), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint(
            "subscription_status IN ('trialing', 'active', 'past_due', 'canceled')",
            name="ck_companies_subscription_status",
        ),
    )
    op.create_index("ix_companies_owner", "companies", ["owner_user_id"])

    # ------------------------------------------------------------------
    # users / auth_sessions
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(128), nullable=False),
        sa.Column("role", sa.String(32), nullable=False, server_default="employee"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "auth_sessions",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False, unique=True),
        *_timestamps(),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_auth_sessions_user", "auth_sessions", ["user_id"])

    # ------------------------------------------------------------------
    # profiles
    # ------------------------------------------------------------------
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role", sa.String(32), nullable=False, server_default="employee"),
        sa.Column("full_name", sa.String(256), nullable=True),
        sa.Column(
            "company_id",
            sa.String(64),
            sa.ForeignKey("companies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.CheckConstraint("role IN ('business_admin', 'employee')", name="ck_profiles_role"),
    )
    op.create_index("ix_profiles_company", "profiles", ["company_id"])

    # ------------------------------------------------------------------
    # employees
    # ------------------------------------------------------------------
    op.create_table(
        "employees",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(64),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("full_name", sa.String(256), nullable=False),
        sa.Column("department", sa.String(128), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_employees_company_name", "employees", ["company_id", "full_name"])

    # ------------------------------------------------------------------
    # shifts
    # ------------------------------------------------------------------
    op.create_table(
        "shifts",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column(
            "company_id",
            sa.String(64),
            sa.ForeignKey("companies.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "employee_id",
            sa.String(64),
            sa.ForeignKey("employees.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("assigned_user_id", sa.String(64), nullable=True),
        sa.Column("department", sa.String(128), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("location", sa.String(256), nullable=True),
        sa.Column("role", sa.String(128), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.CheckConstraint("start_time < end_time", name="ck_shifts_start_before_end"),
    )
    op.create_index("ix_shifts_company_start", "shifts", ["company_id", "start_time"])
    op.create_index("ix_shifts_assigned_user", "shifts", ["assigned_user_id"])


def downgrade() -> None:
    op.drop_index("ix_shifts_assigned_user", table_name="shifts")
    op.drop_index("ix_shifts_company_start", table_name="shifts")
    op.drop_table("shifts")
    op.drop_index("ix_employees_company_name", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_profiles_company", table_name="profiles")
    op.drop_table("profiles")
    op.drop_index("ix_auth_sessions_user", table_name="auth_sessions")
    op.drop_table("auth_sessions")
    op.drop_table("users")
    op.drop_index("ix_companies_owner", table_name="companies")
    op.drop_table("companies")
