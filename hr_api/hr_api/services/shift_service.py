"""Admin shift management with post-commit change notifications.

Every write commits its own transaction and then publishes a
:class:`~hr_core.state.changes.ChangeEvent` on the ``shifts`` table, so
open rota views re-fetch only once the change is visible to them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from hr_core.rota import SHIFTS_TABLE
from hr_core.state.changes import ChangeEvent, ChangeFeed, ChangeKind
from hr_core.state.repository import EmployeeRepository, ShiftRepository, as_utc
from hr_core.state.tables import ShiftTable
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class ShiftValidationError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.status_code = 422


class NotFoundError(Exception):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.status_code = 404


def _check_times(start_time: datetime, end_time: datetime) -> None:
    if as_utc(start_time) >= as_utc(end_time):
        raise ShiftValidationError("start_time must be before end_time")


def shift_record(row: ShiftTable) -> dict[str, Any]:
    """Serialisable snapshot of a shift row."""
    return {
        "id": row.id,
        "employee_id": row.employee_id,
        "assigned_user_id": row.assigned_user_id,
        "department": row.department,
        "start_time": as_utc(row.start_time).isoformat(),
        "end_time": as_utc(row.end_time).isoformat(),
        "location": row.location,
        "role": row.role,
        "published": row.published,
        "notes": row.notes,
    }


class ShiftService:
    """Create, edit, publish and delete shifts for one company.

    Parameters
    ----------
    session:
        Company-scoped database session.  Each write commits it.
    company_id:
        The company whose shifts are managed.
    feed:
        Change feed notified after each commit.
    """

    def __init__(self, session: AsyncSession, company_id: str, feed: ChangeFeed) -> None:
        self._session = session
        self._company_id = company_id
        self._feed = feed
        self._shifts = ShiftRepository(session, company_id)
        self._employees = EmployeeRepository(session, company_id)

    async def create(
        self,
        employee_id: str,
        *,
        start_time: datetime,
        end_time: datetime,
        department: str | None = None,
        location: str | None = None,
        role: str | None = None,
        published: bool = False,
        notes: str | None = None,
    ) -> dict[str, Any]:
        _check_times(start_time, end_time)
        employee = await self._employees.get(employee_id)
        if employee is None:
            raise NotFoundError(f"Employee '{employee_id}' not found")

        row = await self._shifts.create(
            employee,
            start_time=start_time,
            end_time=end_time,
            department=department,
            location=location,
            role=role,
            published=published,
            notes=notes,
        )
        record = shift_record(row)
        await self._commit_and_publish(ChangeKind.INSERT, row.id, record)
        return record

    async def update(self, shift_id: str, **fields: Any) -> dict[str, Any]:
        """Apply a partial update.  Omitted (``None``) fields are left as they are."""
        changes = {name: value for name, value in fields.items() if value is not None}
        row = await self._shifts.get(shift_id)
        if row is None:
            raise NotFoundError(f"Shift '{shift_id}' not found")
        _check_times(changes.get("start_time", row.start_time), changes.get("end_time", row.end_time))

        row = await self._shifts.update(shift_id, **changes)
        record = shift_record(row)
        await self._commit_and_publish(ChangeKind.UPDATE, shift_id, record)
        return record

    async def set_published(self, shift_id: str, published: bool = True) -> dict[str, Any]:
        return await self.update(shift_id, published=published)

    async def delete(self, shift_id: str) -> None:
        if not await self._shifts.delete(shift_id):
            raise NotFoundError(f"Shift '{shift_id}' not found")
        await self._commit_and_publish(ChangeKind.DELETE, shift_id, {"id": shift_id})

    async def _commit_and_publish(self, kind: ChangeKind, shift_id: str, record: dict[str, Any]) -> None:
        await self._session.commit()
        delivered = await self._feed.publish(
            ChangeEvent(
                table=SHIFTS_TABLE,
                kind=kind,
                company_id=self._company_id,
                row_id=shift_id,
                record=record,
            )
        )
        logger.info(
            "Shift %s %s (%d listener(s))",
            shift_id,
            kind.value,
            delivered,
            extra={"company_id": self._company_id, "shift_id": shift_id},
        )
