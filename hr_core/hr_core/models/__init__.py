"""Domain models for the HR core."""

from hr_core.models.billing import BillingEventType, SubscriptionEvent, SubscriptionStatus
from hr_core.models.identity import Admin, Employee, ProfileRole, Viewer, resolve_viewer
from hr_core.models.rota import EmployeeView, ShiftView

__all__ = [
    "Admin",
    "BillingEventType",
    "Employee",
    "EmployeeView",
    "ProfileRole",
    "ShiftView",
    "SubscriptionEvent",
    "SubscriptionStatus",
    "Viewer",
    "resolve_viewer",
]
