"""Rota read models returned by the query engine."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ShiftView(BaseModel):
    """A shift as displayed on the weekly rota."""

    id: str
    employee_id: str
    employee_name: str = Field(default="", description="Employee's current full name.")
    department: str | None = Field(default=None, description="Department copied onto the shift.")
    start_time: datetime
    end_time: datetime
    location: str | None = None
    role: str | None = None
    published: bool = False
    notes: str | None = None


class EmployeeView(BaseModel):
    """A roster entry used to populate the department filter."""

    id: str
    full_name: str
    department: str | None = None
