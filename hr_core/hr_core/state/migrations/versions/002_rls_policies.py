"""Enable Row-Level Security on company-scoped tables.

Every company-scoped table receives a ``USING`` and ``WITH CHECK`` clause
tied to ``current_setting('app.company_id', true)``, so queries only see the
bound company's rows even if the ORM layer is bypassed.  Sessions that never
set the variable get NULL and see zero rows.

Revision ID: 002
Revises: 001
Create Date: 2026-09-01 00:10:00.000000+00:00

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

# table -> column holding the company id
_COMPANY_TABLES: dict[str, str] = {
    "employees": "company_id",
    "shifts": "company_id",
}


def _is_postgres() -> bool:
    return op.get_context().dialect.name == "postgresql"


def upgrade() -> None:
    if not _is_postgres():
        return
    for table, column in _COMPANY_TABLES.items():
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} FORCE ROW LEVEL SECURITY")
        op.execute(
            f"CREATE POLICY company_isolation_{table} ON {table} "
            f"USING ({column} = current_setting('app.company_id', true)) "
            f"WITH CHECK ({column} = current_setting('app.company_id', true))"
        )


def downgrade() -> None:
    if not _is_postgres():
        return
    for table in reversed(list(_COMPANY_TABLES)):
        op.execute(f"DROP POLICY IF EXISTS company_isolation_{table} ON {table}")
        op.execute(f"ALTER TABLE {table} NO FORCE ROW LEVEL SECURITY")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
