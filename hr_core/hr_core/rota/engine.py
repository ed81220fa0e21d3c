"""Rota query engine and live rota view.

:class:`RotaQueryEngine` answers one question: which shifts may this viewer
see in this week window.  Company scope always applies; an
:class:`~hr_core.models.identity.Employee` viewer is further restricted to
shifts assigned to them that have been published.

:class:`RotaView` keeps a query fresh.  It subscribes to the change feed
for the ``shifts`` table and re-runs the full window query on every change,
whatever row changed.  The subscription belongs to the view and is released
when the view moves to another window or is closed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hr_core.models.identity import Admin, Employee, Viewer
from hr_core.models.rota import EmployeeView, ShiftView
from hr_core.rota.window import RotaWindow
from hr_core.state.changes import ChangeEvent, ChangeFeed, ChangeKind, Subscription
from hr_core.state.database import set_company_context
from hr_core.state.repository import EmployeeRepository, ShiftRepository, as_utc

logger = logging.getLogger(__name__)

SHIFTS_TABLE = "shifts"


def filter_by_department(shifts: Iterable[ShiftView], department: str | None) -> list[ShiftView]:
    """Narrow an already-fetched shift list to one department.

    An empty or ``None`` filter returns every shift.
    """
    if not department:
        return list(shifts)
    return [s for s in shifts if (s.department or "") == department]


def departments_of(employees: Iterable[EmployeeView]) -> list[str]:
    """Distinct non-empty departments in roster order."""
    seen: dict[str, None] = {}
    for employee in employees:
        if employee.department:
            seen.setdefault(employee.department, None)
    return list(seen)


class RotaQueryEngine:
    """Role-scoped rota reads for a single viewer.

    Parameters
    ----------
    session:
        Active database session.
    viewer:
        The resolved viewer; decides company scope and visibility.
    """

    def __init__(self, session: AsyncSession, viewer: Viewer) -> None:
        self._session = session
        self._viewer = viewer

    async def fetch(self, window: RotaWindow) -> list[ShiftView]:
        """Return the shifts visible to the viewer within *window*, by start time."""
        repo = ShiftRepository(self._session, self._viewer.company_id)
        if isinstance(self._viewer, Admin):
            rows = await repo.list_in_window(window.start, window.end)
        elif isinstance(self._viewer, Employee):
            rows = await repo.list_in_window(
                window.start,
                window.end,
                assigned_user_id=self._viewer.user_id,
                published_only=True,
            )
        else:
            raise TypeError(f"Unsupported viewer: {self._viewer!r}")

        return [
            ShiftView(
                id=shift.id,
                employee_id=shift.employee_id,
                employee_name=employee_name or "",
                department=shift.department,
                start_time=as_utc(shift.start_time),
                end_time=as_utc(shift.end_time),
                location=shift.location,
                role=shift.role,
                published=shift.published,
                notes=shift.notes,
            )
            for shift, employee_name in rows
        ]

    async def list_employees(self) -> list[EmployeeView]:
        """The company roster ordered by full name."""
        repo = EmployeeRepository(self._session, self._viewer.company_id)
        return [
            EmployeeView(id=row.id, full_name=row.full_name, department=row.department)
            for row in await repo.list_by_name()
        ]


@dataclass
class RotaSnapshot:
    """What a rota screen shows at one point in time."""

    window: RotaWindow
    shifts: list[ShiftView] = field(default_factory=list)
    employees: list[EmployeeView] = field(default_factory=list)
    department: str | None = None

    @property
    def departments(self) -> list[str]:
        return departments_of(self.employees)

    @property
    def visible_shifts(self) -> list[ShiftView]:
        """Shifts after the client-side department filter."""
        return filter_by_department(self.shifts, self.department)


RefreshCallback = Callable[[RotaSnapshot], Awaitable[None]]


class RotaView:
    """A live rota for one viewer and one window.

    Use as an async context manager, or call :meth:`open` and :meth:`close`.

    Parameters
    ----------
    session_factory:
        Factory for the short-lived sessions each re-fetch uses.
    feed:
        Change feed to subscribe to.
    viewer:
        The viewer whose visibility rules apply.
    window:
        The initial week window.
    department:
        Optional client-side department filter.
    on_refresh:
        Awaited with the new snapshot after every re-fetch.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
        viewer: Viewer,
        window: RotaWindow,
        *,
        department: str | None = None,
        on_refresh: RefreshCallback | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed
        self._viewer = viewer
        self._on_refresh = on_refresh
        self._subscription: Subscription | None = None
        self._closed = False
        self.snapshot = RotaSnapshot(window=window, department=department)

    @property
    def window(self) -> RotaWindow:
        return self.snapshot.window

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def __aenter__(self) -> RotaView:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()

    async def open(self) -> RotaSnapshot:
        """Subscribe to shift changes and load the first snapshot."""
        if self._closed:
            raise RuntimeError("RotaView is closed")
        self._subscribe()
        return await self.refresh()

    def close(self) -> None:
        """Release the change subscription.  Safe to call repeatedly."""
        self._release()
        self._closed = True

    async def move(self, weeks: int) -> RotaSnapshot:
        """Move to the window *weeks* weeks away and reload it.

        The old subscription is released before the new one is taken, so a
        view never holds two listeners.
        """
        if self._closed:
            raise RuntimeError("RotaView is closed")
        self._release()
        self.snapshot = RotaSnapshot(
            window=self.window.shifted(weeks),
            employees=self.snapshot.employees,
            department=self.snapshot.department,
        )
        self._subscribe()
        return await self.refresh()

    def set_department(self, department: str | None) -> RotaSnapshot:
        """Change the department filter without touching the store."""
        self.snapshot.department = department or None
        return self.snapshot

    async def refresh(self) -> RotaSnapshot:
        """Re-run the full window query for the current window."""
        window = self.window
        async with self._session_factory() as session:
            await set_company_context(session, self._viewer.company_id)
            engine = RotaQueryEngine(session, self._viewer)
            shifts = await engine.fetch(window)
            employees = await engine.list_employees()

        if window != self.window:
            # The view moved while this query was in flight; the newer
            # refresh owns the snapshot.
            return self.snapshot

        self.snapshot = RotaSnapshot(
            window=window,
            shifts=shifts,
            employees=employees,
            department=self.snapshot.department,
        )
        if self._on_refresh is not None:
            await self._on_refresh(self.snapshot)
        return self.snapshot

    def _subscribe(self) -> None:
        self._subscription = self._feed.subscribe(SHIFTS_TABLE, self._on_change, kind=ChangeKind.ALL)

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.release()
            self._subscription = None

    async def _on_change(self, event: ChangeEvent) -> None:
        if self._closed:
            return
        logger.debug(
            "Shift %s %s; refreshing rota %s for company %s",
            event.row_id,
            event.kind.value,
            self.window.anchor.isoformat(),
            self._viewer.company_id,
        )
        await self.refresh()
