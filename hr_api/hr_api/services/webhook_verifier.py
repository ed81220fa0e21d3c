"""Stripe webhook signature verification.

The signature is checked over the exact bytes Stripe sent, before any JSON
decoding, so a re-serialised body can never pass.  Only a verified body is
turned into a :class:`~hr_core.models.billing.SubscriptionEvent`.
"""

from __future__ import annotations

import json
import logging

import stripe
from hr_core.models.billing import SubscriptionEvent
from pydantic import ValidationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "Stripe-Signature"
DEFAULT_TOLERANCE_SECONDS = 300


class WebhookConfigError(Exception):
    """The request or the server lacks what is needed to verify a webhook."""

    def __init__(self, message: str = "Missing webhook secret") -> None:
        super().__init__(message)
        self.status_code = 400


class WebhookVerificationError(Exception):
    """The payload failed signature verification or could not be decoded."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.status_code = 400


def verify_event(
    payload: bytes,
    signature_header: str | None,
    secret: str | None,
    *,
    tolerance: int = DEFAULT_TOLERANCE_SECONDS,
) -> SubscriptionEvent:
    """Verify *payload* against *signature_header* and decode it.

    Parameters
    ----------
    payload:
        The raw request body, byte for byte.
    signature_header:
        Value of the ``Stripe-Signature`` header.
    secret:
        The endpoint's webhook signing secret (``whsec_...``).
    tolerance:
        Maximum age in seconds of the signed timestamp.

    Raises
    ------
    WebhookConfigError
        If the header or the secret is missing.
    WebhookVerificationError
        If the signature does not match, the timestamp is stale, or the
        verified body is not a well-formed event.
    """
    if not signature_header or not secret:
        raise WebhookConfigError()

    try:
        stripe.WebhookSignature.verify_header(
            payload.decode("utf-8"),
            signature_header,
            secret,
            tolerance,
        )
    except stripe.SignatureVerificationError as exc:
        logger.warning("Stripe webhook signature verification failed: %s", exc)
        raise WebhookVerificationError(str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise WebhookVerificationError("Payload is not valid UTF-8") from exc

    try:
        body = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise WebhookVerificationError(f"Invalid payload: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise WebhookVerificationError("Invalid payload: expected a JSON object")

    try:
        return SubscriptionEvent.from_payload(body)
    except ValidationError as exc:
        raise WebhookVerificationError("Invalid payload: event has no type") from exc
    except ValueError as exc:
        raise WebhookVerificationError(f"Invalid payload: {exc}") from exc
