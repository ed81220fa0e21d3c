"""Subscription billing reconciliation."""

from hr_core.billing.reconciler import (
    STATUS_BY_EVENT,
    ReconciliationResult,
    StatusChange,
    SubscriptionReconciler,
    resolve_company_id,
    status_change_for,
)

__all__ = [
    "STATUS_BY_EVENT",
    "ReconciliationResult",
    "StatusChange",
    "SubscriptionReconciler",
    "resolve_company_id",
    "status_change_for",
]
