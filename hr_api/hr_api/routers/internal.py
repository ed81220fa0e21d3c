"""Internal endpoints for trusted callers (jobs, support tooling).

``POST /internal/billing/update-subscription`` sets a company's
subscription status directly.  When ``API_INTERNAL_API_TOKEN`` is set,
callers must present it in ``X-Internal-Token``.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from hr_core.models.billing import SubscriptionStatus
from sqlalchemy.exc import SQLAlchemyError

from hr_api.dependencies import PublicSessionDep, SettingsDep
from hr_api.schemas import UpdateSubscriptionRequest
from hr_api.services.billing_service import BillingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal", tags=["internal"], include_in_schema=False)

_TOKEN_HEADER = "X-Internal-Token"


async def _read_body(request: Request) -> UpdateSubscriptionRequest | None:
    """Parse the JSON body; anything that is not an object of strings is ``None``."""
    try:
        return UpdateSubscriptionRequest.model_validate(await request.json())
    except ValueError:
        return None


@router.post("/billing/update-subscription")
async def update_subscription(
    request: Request,
    session: PublicSessionDep,
    settings: SettingsDep,
) -> JSONResponse:
    expected = settings.internal_api_token.get_secret_value()
    if expected:
        presented = request.headers.get(_TOKEN_HEADER, "")
        if not hmac.compare_digest(presented.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Rejected internal subscription update: bad or missing %s", _TOKEN_HEADER)
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    body = await _read_body(request)
    if body is None or not body.company_id or not body.status:
        return JSONResponse(status_code=400, content={"error": "Missing params"})
    try:
        status = SubscriptionStatus(body.status)
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Invalid status"})

    try:
        await BillingService(session, settings).update_status(body.company_id, status)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Internal subscription update for %s failed: %s", body.company_id, exc)
        return JSONResponse(status_code=500, content={"error": "Subscription update failed"})

    return JSONResponse(content={"ok": True})
