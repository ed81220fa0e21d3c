"""Stripe billing integration service.

Provides checkout session creation, subscription lookups, and the
reconciliation of verified webhook events into company subscription
status.
"""

from __future__ import annotations

import logging
from typing import Any

from hr_core.billing import ReconciliationResult, SubscriptionReconciler
from hr_core.models.billing import SubscriptionEvent, SubscriptionStatus
from hr_core.state.repository import CompanyRepository
from sqlalchemy.ext.asyncio import AsyncSession

from hr_api.config import APISettings

logger = logging.getLogger(__name__)


class BillingProviderError(Exception):
    """Raised when a Stripe API call fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.status_code = 502


class BillingService:
    """Billing operations, optionally bound to one company.

    Parameters
    ----------
    session:
        Active database session.  The caller owns the transaction.
    settings:
        API settings containing Stripe configuration.
    company_id:
        The company performing billing operations.  Webhook
        reconciliation resolves the company from the event instead and
        does not need one.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: APISettings,
        *,
        company_id: str | None = None,
    ) -> None:
        self._session = session
        self._settings = settings
        self._company_id = company_id

    def _get_stripe(self) -> Any:
        """Configure and return the Stripe library."""
        import stripe

        stripe.api_key = self._settings.stripe_secret_key.get_secret_value()
        return stripe

    def _require_company(self) -> str:
        if self._company_id is None:
            raise ValueError("BillingService is not bound to a company")
        return self._company_id

    # ------------------------------------------------------------------
    # Webhook reconciliation
    # ------------------------------------------------------------------

    async def reconcile(self, event: SubscriptionEvent) -> ReconciliationResult:
        """Apply the status change implied by a verified event."""
        result = await SubscriptionReconciler(self._session).reconcile(event)
        logger.info(
            "Stripe event %s (%s) reconciled: applied=%s",
            event.id or "-",
            event.type,
            result.applied,
        )
        return result

    async def update_status(self, company_id: str, status: SubscriptionStatus) -> bool:
        """Set a company's status directly (internal trigger path)."""
        return await SubscriptionReconciler(self._session).apply(company_id, status)

    # ------------------------------------------------------------------
    # Company-bound operations
    # ------------------------------------------------------------------

    async def get_subscription_info(self) -> dict[str, Any]:
        """Return the company's current subscription status."""
        company_id = self._require_company()
        company = await CompanyRepository(self._session).get(company_id)
        if company is None:
            return {"company_id": company_id, "status": None}
        return {
            "company_id": company.id,
            "status": company.subscription_status,
            "stripe_customer_id": company.stripe_customer_id,
        }

    async def create_checkout_session(
        self,
        *,
        price_id: str | None = None,
        customer_email: str | None = None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> dict[str, str]:
        """Create a Stripe Checkout session for a new subscription.

        The company id is written to the session's ``metadata`` and to
        ``subscription_data.metadata`` so that checkout, invoice and
        subscription events can all be traced back to the company.

        Returns
        -------
        dict
            Contains ``url`` to redirect the customer to.

        Raises
        ------
        ValueError
            If no price id is given or configured.
        BillingProviderError
            If Stripe rejects the request.
        """
        company_id = self._require_company()
        price = price_id or self._settings.stripe_price_id
        if not price:
            raise ValueError("No Stripe price configured")

        company = await CompanyRepository(self._session).get(company_id)
        metadata = {"company_id": company_id}
        session_params: dict[str, Any] = {
            "mode": "subscription",
            "line_items": [{"price": price, "quantity": 1}],
            "success_url": success_url or self._settings.checkout_success_url,
            "cancel_url": cancel_url or self._settings.checkout_cancel_url,
            "metadata": metadata,
            "subscription_data": {"metadata": metadata},
        }
        if company is not None and company.stripe_customer_id:
            session_params["customer"] = company.stripe_customer_id
        elif customer_email:
            session_params["customer_email"] = customer_email

        stripe = self._get_stripe()
        try:
            checkout_session = stripe.checkout.Session.create(**session_params)
        except stripe.StripeError as exc:
            logger.warning("Stripe checkout creation failed for company %s: %s", company_id, exc)
            raise BillingProviderError(str(exc.user_message or exc)) from exc

        logger.info("Created checkout session for company %s", company_id)
        return {"url": checkout_session["url"]}
