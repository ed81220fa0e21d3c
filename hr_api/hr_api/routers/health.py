"""Health-check and readiness probe endpoints.

``/health`` (liveness) is registered under ``/api/v1``.  ``/ready`` sits at
the application root so orchestrators can gate traffic independently of
the API version.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from hr_api import __version__
from hr_api.dependencies import ChangeFeedDep, PublicSessionDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _db_ok(session: PublicSessionDep) -> bool:
    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("DB health check failed: %s", exc)
        return False
    return True


@router.get("/health")
async def health(session: PublicSessionDep, settings: SettingsDep, feed: ChangeFeedDep) -> dict[str, Any]:
    """Return service health.

    Always 200 so load-balancers see the service as alive; ``db`` reports
    whether the store is reachable.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "db": "ok" if await _db_ok(session) else "degraded",
        "billing_enabled": settings.billing_enabled,
        "live_subscriptions": feed.subscriber_count,
    }


readiness_router = APIRouter(tags=["infrastructure"])


@readiness_router.get("/ready")
async def readiness_probe(session: PublicSessionDep) -> JSONResponse:
    """Readiness probe: 200 ``ready`` when the database answers, else 503 ``not_ready``."""
    ready = await _db_ok(session)
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "ready" if ready else "not_ready",
            "version": __version__,
            "checks": {"db": "ok" if ready else "unavailable"},
        },
    )
