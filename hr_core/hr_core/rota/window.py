"""Monday-anchored week windows for rota queries.

A window covers seven whole days: Monday 00:00:00.000 through Sunday
23:59:59.999 in the rota's timezone.  Navigation moves both boundaries
together so a window can never drift to a partial week.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo

_LAST_MOMENT = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class RotaWindow:
    """An inclusive ``[start, end]`` week range."""

    start: datetime
    end: datetime

    @classmethod
    def starting(cls, monday: date, tz: tzinfo = UTC) -> RotaWindow:
        """Build the window whose first day is *monday*."""
        if monday.weekday() != 0:
            raise ValueError(f"Window must start on a Monday, got {monday.isoformat()} ({monday:%A})")
        start = datetime.combine(monday, time.min, tzinfo=tz)
        end = datetime.combine(monday + timedelta(days=6), _LAST_MOMENT, tzinfo=tz)
        return cls(start=start, end=end)

    @property
    def anchor(self) -> date:
        """The Monday this window starts on."""
        return self.start.date()

    def shifted(self, weeks: int) -> RotaWindow:
        """Return the window *weeks* weeks later (negative for earlier)."""
        return RotaWindow.starting(self.anchor + timedelta(weeks=weeks), self.start.tzinfo or UTC)

    def previous(self) -> RotaWindow:
        return self.shifted(-1)

    def next(self) -> RotaWindow:
        return self.shifted(1)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


def week_window(reference: date | datetime | None = None, tz: tzinfo = UTC) -> RotaWindow:
    """Return the window containing *reference* (today when omitted).

    Aware datetimes are converted to *tz* before the calendar date is taken;
    naive datetimes and dates are read as already being in *tz*.
    """
    if reference is None:
        day = datetime.now(tz).date()
    elif isinstance(reference, datetime):
        day = reference.astimezone(tz).date() if reference.tzinfo is not None else reference.date()
    else:
        day = reference
    return RotaWindow.starting(day - timedelta(days=day.weekday()), tz)
