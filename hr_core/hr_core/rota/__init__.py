"""Weekly rota: window arithmetic, role-scoped queries, live refresh."""

from hr_core.rota.engine import (
    SHIFTS_TABLE,
    RotaQueryEngine,
    RotaSnapshot,
    RotaView,
    departments_of,
    filter_by_department,
)
from hr_core.rota.window import RotaWindow, week_window

__all__ = [
    "SHIFTS_TABLE",
    "RotaQueryEngine",
    "RotaSnapshot",
    "RotaView",
    "RotaWindow",
    "departments_of",
    "filter_by_department",
    "week_window",
]
