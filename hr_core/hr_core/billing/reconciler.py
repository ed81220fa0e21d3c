"""Translate verified Stripe events into company subscription-status writes.

The status a company ends up in depends only on the type of the latest
event processed for it (last write wins).  Each reconciliation is one
``UPDATE`` of a single column, so replays and duplicate deliveries are
harmless.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from hr_core.models.billing import BillingEventType, SubscriptionEvent, SubscriptionStatus
from hr_core.state.repository import CompanyRepository

logger = logging.getLogger(__name__)

STATUS_BY_EVENT: dict[BillingEventType, SubscriptionStatus] = {
    BillingEventType.CHECKOUT_SESSION_COMPLETED: SubscriptionStatus.ACTIVE,
    BillingEventType.INVOICE_PAYMENT_FAILED: SubscriptionStatus.PAST_DUE,
    BillingEventType.SUBSCRIPTION_DELETED: SubscriptionStatus.CANCELED,
}

_COMPANY_ID_KEY = "company_id"


@dataclass(frozen=True)
class StatusChange:
    """The write a verified event maps to."""

    company_id: str
    status: SubscriptionStatus


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of reconciling one event.

    ``change`` is ``None`` for events that map to no write (unsupported
    type or no resolvable company).  ``matched`` is ``False`` when the
    write ran but no company row had that id.
    """

    event_type: str
    change: StatusChange | None = None
    matched: bool = False

    @property
    def applied(self) -> bool:
        return self.change is not None and self.matched


def _metadata_company_id(obj: Any) -> str | None:
    if not isinstance(obj, dict):
        return None
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        return None
    value = metadata.get(_COMPANY_ID_KEY)
    return str(value) if value else None


def resolve_company_id(event: SubscriptionEvent) -> str | None:
    """Find the company an event belongs to.

    Checkout sessions and subscriptions carry ``metadata.company_id``
    directly.  Invoices carry it on ``subscription_details.metadata`` and
    only sometimes on their own ``metadata``, which is the fallback.
    """
    obj = event.data_object
    if event.known_type is BillingEventType.INVOICE_PAYMENT_FAILED:
        return _metadata_company_id(obj.get("subscription_details")) or _metadata_company_id(obj)
    return _metadata_company_id(obj)


def status_change_for(event: SubscriptionEvent) -> StatusChange | None:
    """Map *event* to the status write it implies, or ``None`` for a no-op."""
    event_type = event.known_type
    if event_type is None:
        return None
    company_id = resolve_company_id(event)
    if company_id is None:
        return None
    return StatusChange(company_id=company_id, status=STATUS_BY_EVENT[event_type])


class SubscriptionReconciler:
    """Apply status changes to the ``companies`` table.

    Parameters
    ----------
    session:
        Active database session.  The caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._companies = CompanyRepository(session)

    async def apply(self, company_id: str, status: SubscriptionStatus) -> bool:
        """Write *status* for *company_id*.  Returns whether a company matched."""
        matched = await self._companies.set_subscription_status(company_id, status.value)
        if matched:
            logger.info(
                "Subscription status for company %s set to %s",
                company_id,
                status.value,
                extra={"company_id": company_id},
            )
        else:
            logger.warning("Subscription status update for unknown company %s ignored", company_id)
        return matched

    async def reconcile(self, event: SubscriptionEvent) -> ReconciliationResult:
        """Reconcile one verified event.

        Unsupported event types and events without a company id are
        skipped without touching the store.  Store errors propagate.
        """
        change = status_change_for(event)
        if change is None:
            if event.known_type is None:
                logger.debug("Ignoring unsupported Stripe event type: %s", event.type)
            else:
                logger.info(
                    "Stripe event %s has no company_id; skipping", event.id, extra={"event_type": event.type}
                )
            return ReconciliationResult(event_type=event.type)

        matched = await self.apply(change.company_id, change.status)
        return ReconciliationResult(event_type=event.type, change=change, matched=matched)
