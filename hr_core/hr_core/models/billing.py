"""Billing models: subscription status and verified Stripe events."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class SubscriptionStatus(str, Enum):
    """Subscription state held on ``companies.subscription_status``."""

    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"


class BillingEventType(str, Enum):
    """Stripe event types that drive a subscription status change."""

    CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"
    SUBSCRIPTION_DELETED = "customer.subscription.deleted"


class SubscriptionEvent(BaseModel):
    """A Stripe event that has passed signature verification.

    Only exists for the duration of a webhook request.  ``type`` keeps the
    raw Stripe string so unsupported events can still be logged and skipped.
    """

    id: str = Field(default="", description="Stripe event identifier (evt_...).")
    type: str = Field(..., min_length=1, description="Stripe event type tag.")
    created: datetime | None = Field(default=None, description="When Stripe created the event.")
    data_object: dict[str, Any] = Field(
        default_factory=dict,
        description="The event's ``data.object`` payload.",
    )

    @property
    def known_type(self) -> BillingEventType | None:
        """Return the typed event tag, or ``None`` for unsupported events."""
        try:
            return BillingEventType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> SubscriptionEvent:
        """Build an event from a decoded Stripe webhook body.

        Raises ``ValueError`` when ``data``/``data.object`` are not objects or
        ``created`` is not a usable Unix timestamp, and ``ValidationError``
        when the event has no type.
        """
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("event data must be an object")
        data_object = data.get("object") or {}
        if not isinstance(data_object, dict):
            raise ValueError("event data.object must be an object")
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            created=_event_time(payload.get("created")),
            data_object=data_object,
        )


def _event_time(created: Any) -> datetime | None:
    if created is None:
        return None
    if isinstance(created, bool) or not isinstance(created, (int, float)):
        raise ValueError("event created must be a Unix timestamp")
    try:
        return datetime.fromtimestamp(created, tz=UTC)
    except (OverflowError, OSError, ValueError) as exc:
        raise ValueError(f"event created out of range: {created!r}") from exc
