"""Billing endpoints: Stripe webhook, checkout, subscription status."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from hr_api.dependencies import AdminDep, CompanySessionDep, PublicSessionDep, SettingsDep
from hr_api.schemas import CheckoutRequest, CheckoutSessionResponse, SubscriptionResponse
from hr_api.services.billing_service import BillingProviderError, BillingService
from hr_api.services.webhook_verifier import (
    SIGNATURE_HEADER,
    WebhookConfigError,
    WebhookVerificationError,
    verify_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    session: PublicSessionDep,
    settings: SettingsDep,
) -> Any:
    """Handle incoming Stripe webhook events.

    The signature is verified over the raw body before anything else.
    This endpoint bypasses session authentication (validated via the
    Stripe signature instead).  Once an event is verified it is always
    acknowledged with 200; a failed status write is reported in an
    ``error`` field so Stripe's retry can re-apply it safely.
    """
    if not settings.billing_enabled:
        return {"received": False, "status": "billing_disabled"}

    payload = await request.body()
    try:
        event = verify_event(
            payload,
            request.headers.get(SIGNATURE_HEADER),
            settings.stripe_webhook_secret.get_secret_value(),
            tolerance=settings.stripe_webhook_tolerance,
        )
    except WebhookConfigError as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})
    except WebhookVerificationError as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": f"Webhook Error: {exc}"})

    service = BillingService(session, settings)
    try:
        await service.reconcile(event)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning(
            "Reconciliation of Stripe event %s failed: %s", event.id, exc, extra={"event_type": event.type}
        )
        return {"received": True, "error": f"Subscription update failed ({type(exc).__name__})"}

    return {"received": True}


@router.post("/checkout", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    session: CompanySessionDep,
    settings: SettingsDep,
    admin: AdminDep,
) -> Any:
    """Create a Stripe Checkout session for the admin's company.

    Returns a ``url`` that the frontend should redirect the user to.
    """
    if not settings.billing_enabled:
        return JSONResponse(status_code=404, content={"error": "Billing is not enabled for this installation."})

    service = BillingService(session, settings, company_id=admin.company_id)
    try:
        return await service.create_checkout_session(price_id=body.price_id)
    except BillingProviderError as exc:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@router.get("/subscription", response_model=SubscriptionResponse)
async def get_subscription(
    session: CompanySessionDep,
    settings: SettingsDep,
    admin: AdminDep,
) -> dict[str, Any]:
    """Return the subscription status of the admin's company."""
    info = await BillingService(session, settings, company_id=admin.company_id).get_subscription_info()
    return {"company_id": info["company_id"], "status": info["status"], "billing_enabled": settings.billing_enabled}
