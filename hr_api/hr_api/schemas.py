"""Shared Pydantic request/response models for API endpoints.

These schemas ensure that endpoint responses are validated and documented
in the OpenAPI specification.  Routers import from here to avoid duplication.
"""

from __future__ import annotations

from datetime import date, datetime

from hr_core.models.rota import EmployeeView, ShiftView
from hr_core.rota import RotaSnapshot
from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ---------------------------------------------------------------------------
# Auth schemas
# ---------------------------------------------------------------------------


class SignInRequest(BaseModel):
    """Request body for ``POST /auth/signin``."""

    email: str = Field(..., max_length=320, description="Email address, matched case-insensitively.")
    password: str = Field(..., max_length=1024, description="Password.")


class SignInResponse(BaseModel):
    """Where the client should go after signing in."""

    next: str


class SessionResponse(BaseModel):
    user_id: str
    company_id: str
    role: str


# ---------------------------------------------------------------------------
# Billing schemas
# ---------------------------------------------------------------------------


class CheckoutRequest(BaseModel):
    """Request body for ``POST /billing/checkout``.  All fields optional."""

    price_id: str | None = Field(default=None, description="Stripe price id; defaults to the configured price.")


class CheckoutSessionResponse(BaseModel):
    url: str


class SubscriptionResponse(BaseModel):
    company_id: str
    status: str | None = None
    billing_enabled: bool = True


class UpdateSubscriptionRequest(BaseModel):
    """Body of the internal status-update trigger.

    Field names follow the camelCase wire format of the callers.  Both are
    optional here so a missing value can be answered with the endpoint's
    own error body instead of a validation error.
    """

    model_config = ConfigDict(populate_by_name=True)

    company_id: str | None = Field(default=None, alias="companyId")
    status: str | None = None


# ---------------------------------------------------------------------------
# Company schemas
# ---------------------------------------------------------------------------


class CompanyProfileResponse(BaseModel):
    id: str
    company_name: str
    address: str | None = None
    phone: str | None = None
    company_email: str | None = None
    paye_ref: str | None = None
    subscription_status: str
    profile_complete: bool


class CompanyProfileUpdate(BaseModel):
    """Partial update of the company profile; omitted fields are unchanged."""

    company_name: str | None = Field(default=None, min_length=1, max_length=256)
    address: str | None = Field(default=None, max_length=2000)
    phone: str | None = Field(default=None, max_length=64)
    company_email: EmailStr | None = None
    paye_ref: str | None = Field(default=None, max_length=64)


# ---------------------------------------------------------------------------
# Shift schemas
# ---------------------------------------------------------------------------


class ShiftCreateRequest(BaseModel):
    employee_id: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    department: str | None = Field(default=None, description="Defaults to the employee's department.")
    location: str | None = None
    role: str | None = None
    published: bool = False
    notes: str | None = None


class ShiftUpdateRequest(BaseModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    department: str | None = None
    location: str | None = None
    role: str | None = None
    published: bool | None = None
    notes: str | None = None


class ShiftResponse(BaseModel):
    id: str
    employee_id: str
    assigned_user_id: str | None = None
    department: str | None = None
    start_time: datetime
    end_time: datetime
    location: str | None = None
    role: str | None = None
    published: bool
    notes: str | None = None


# ---------------------------------------------------------------------------
# Rota schemas
# ---------------------------------------------------------------------------


class RotaResponse(BaseModel):
    """One week of the rota as the viewer may see it."""

    week_start: datetime
    week_end: datetime
    prev_week_start: date
    next_week_start: date
    department: str | None = None
    departments: list[str] = Field(default_factory=list)
    shifts: list[ShiftView] = Field(default_factory=list)
    employees: list[EmployeeView] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, snapshot: RotaSnapshot) -> RotaResponse:
        window = snapshot.window
        return cls(
            week_start=window.start,
            week_end=window.end,
            prev_week_start=window.previous().anchor,
            next_week_start=window.next().anchor,
            department=snapshot.department,
            departments=snapshot.departments,
            shifts=snapshot.visible_shifts,
            employees=snapshot.employees,
        )
