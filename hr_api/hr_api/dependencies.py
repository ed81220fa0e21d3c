"""FastAPI dependency injection for settings, database sessions, the change feed and the viewer."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Mapping
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, Request, WebSocket
from hr_core.models.identity import Admin, Viewer
from hr_core.state.changes import ChangeFeed
from hr_core.state.database import get_engine, session_factory, set_company_context
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hr_api.config import APISettings, load_api_settings
from hr_api.services.identity_service import IdentityService

logger = logging.getLogger(__name__)

SESSION_COOKIE_KEY = "lasz_session"

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_settings_cache: APISettings | None = None


def get_settings() -> APISettings:
    """Return the cached :class:`APISettings` singleton."""
    global _settings_cache  # noqa: PLW0603
    if _settings_cache is None:
        _settings_cache = load_api_settings()
    return _settings_cache


SettingsDep = Annotated[APISettings, Depends(get_settings)]

# ---------------------------------------------------------------------------
# Database session
# ---------------------------------------------------------------------------

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def init_engine(settings: APISettings) -> AsyncEngine:
    """Create and cache the global async engine."""
    global _engine, _session_factory  # noqa: PLW0603
    _engine = get_engine(settings.database_url)
    _session_factory = session_factory(_engine)
    return _engine


async def dispose_engine() -> None:
    """Dispose the global engine pool (call during shutdown)."""
    global _engine, _session_factory  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the global async session factory.

    Used by components that live longer than one request (live rota views)
    and open their own short-lived sessions.
    """
    if _session_factory is None:
        raise RuntimeError(
            "Database engine has not been initialised. Ensure init_engine() is called during application startup."
        )
    return _session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` **without** company RLS context.

    Only for requests that run before a company is known (sign-in, session
    lookup, Stripe webhooks, the internal status endpoint, health probes).
    Company-scoped endpoints use :data:`CompanySessionDep`.

    The session commits on clean exit and rolls back on exception.
    """
    session = get_session_factory()()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


PublicSessionDep = Annotated[AsyncSession, Depends(get_db_session)]

# ---------------------------------------------------------------------------
# Change feed
# ---------------------------------------------------------------------------

_change_feed: ChangeFeed | None = None


def init_change_feed() -> ChangeFeed:
    """Create and cache the process-wide :class:`ChangeFeed`."""
    global _change_feed  # noqa: PLW0603
    _change_feed = ChangeFeed()
    return _change_feed


def get_change_feed() -> ChangeFeed:
    if _change_feed is None:
        raise RuntimeError("Change feed has not been initialised. Ensure init_change_feed() is called during startup.")
    return _change_feed


ChangeFeedDep = Annotated[ChangeFeed, Depends(get_change_feed)]

# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def get_identity_service(session: PublicSessionDep, settings: SettingsDep) -> IdentityService:
    return IdentityService(session, session_ttl=timedelta(hours=settings.session_ttl_hours))


IdentityDep = Annotated[IdentityService, Depends(get_identity_service)]


def session_token_from(headers: Mapping[str, str], cookies: Mapping[str, str]) -> str | None:
    """Pick the session token from a Bearer header or the session cookie."""
    authorization = headers.get("authorization", "")
    if authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
        if token:
            return token
    return cookies.get(SESSION_COOKIE_KEY) or None


def get_session_token(request: Request) -> str:
    token = session_token_from(request.headers, request.cookies)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return token


SessionTokenDep = Annotated[str, Depends(get_session_token)]


async def get_viewer(token: SessionTokenDep, identity: IdentityDep) -> Viewer:
    """Resolve the request's session to a viewer.

    401 when the session is missing, expired or revoked; 403 when the user
    has no company to view.
    """
    user = await identity.current_user(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Session expired or invalid")
    viewer = await identity.viewer_for(user)
    if viewer is None:
        raise HTTPException(status_code=403, detail="No company associated with this account")
    return viewer


ViewerDep = Annotated[Viewer, Depends(get_viewer)]


async def get_live_viewer(websocket: WebSocket, settings: SettingsDep) -> Viewer | None:
    """Resolve the viewer for a websocket connection.

    Browsers cannot set headers on a websocket handshake, so a ``token``
    query parameter is accepted besides the cookie.  The lookup uses its
    own short session instead of holding one for the connection's life.
    Returns ``None`` when the connection is not authenticated.
    """
    token = session_token_from(websocket.headers, websocket.cookies) or websocket.query_params.get("token")
    if not token:
        return None
    async with get_session_factory()() as session:
        identity = IdentityService(session, session_ttl=timedelta(hours=settings.session_ttl_hours))
        user = await identity.current_user(token)
        if user is None:
            return None
        return await identity.viewer_for(user)


LiveViewerDep = Annotated[Viewer | None, Depends(get_live_viewer)]


def require_admin(viewer: ViewerDep) -> Admin:
    if not isinstance(viewer, Admin):
        raise HTTPException(status_code=403, detail="This account is not a business admin.")
    return viewer


AdminDep = Annotated[Admin, Depends(require_admin)]


async def get_company_session(viewer: ViewerDep) -> AsyncGenerator[AsyncSession, None]:
    """Yield an ``AsyncSession`` with the RLS company context set.

    The primary session dependency for all company-scoped endpoints.
    """
    session = get_session_factory()()
    try:
        await set_company_context(session, viewer.company_id)
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


CompanySessionDep = Annotated[AsyncSession, Depends(get_company_session)]
