"""Authentication endpoints: admin sign-in, sign-out, current session.

Security model:
- Sign-in opens a server-side session and returns its opaque token in an
  HttpOnly cookie.  API clients may send the same token as a Bearer header.
- Only business admins may sign in here.  Any other role gets 403 and the
  session opened for it is revoked in the same transaction.
"""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from hr_api.dependencies import (
    SESSION_COOKIE_KEY,
    IdentityDep,
    SettingsDep,
    ViewerDep,
    session_token_from,
)
from hr_api.middleware.login_rate_limiter import LoginRateLimiter
from hr_api.schemas import SessionResponse, SignInRequest, SignInResponse
from hr_api.services.identity_service import AuthError, InvalidCredentialsError
from hr_api.services.session_resolver import SessionResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_SESSION_COOKIE_PATH = "/"

# Module-level sign-in rate limiter (in-memory, single-replica).
_login_limiter = LoginRateLimiter()


def get_login_limiter() -> LoginRateLimiter:
    return _login_limiter


LoginLimiterDep = Annotated[LoginRateLimiter, Depends(get_login_limiter)]


def client_address(request: Request, trusted_proxies: Collection[str]) -> str:
    """Return the address sign-in attempts are counted against.

    ``X-Forwarded-For`` is only read when the socket peer is a trusted
    proxy; then the rightmost hop that is not itself trusted is the client.
    """
    peer = request.client.host if request.client else "unknown"
    forwarded = request.headers.get("X-Forwarded-For")
    if not forwarded or peer not in trusted_proxies:
        return peer
    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return peer


def _error(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


@router.post(
    "/signin",
    response_model=SignInResponse,
    summary="Sign in as a business admin",
    responses={401: {"description": "Invalid credentials"}, 403: {"description": "Not a business admin"}},
)
async def signin(
    body: SignInRequest,
    request: Request,
    identity: IdentityDep,
    settings: SettingsDep,
    limiter: LoginLimiterDep,
) -> JSONResponse:
    """Validate credentials, gate on the admin role, and pick the next page.

    Enforces brute-force protection: after 5 consecutive failures for the
    same (email, IP) pair an escalating lockout applies (30s up to 900s).
    """
    client_ip = client_address(request, settings.trusted_proxies)

    retry_after = limiter.retry_after(body.email, client_ip)
    if retry_after:
        return _error(
            429,
            f"Too many sign-in attempts. Try again in {retry_after} seconds.",
            headers={"Retry-After": str(retry_after)},
        )

    try:
        result = await SessionResolver(identity).sign_in(body.email, body.password)
    except InvalidCredentialsError as exc:
        limiter.record_failure(body.email, client_ip)
        return _error(exc.status_code, str(exc))
    except AuthError as exc:
        # Correct password, wrong role: not a brute-force signal.
        limiter.reset(body.email, client_ip)
        return _error(exc.status_code, str(exc))

    limiter.reset(body.email, client_ip)

    response = JSONResponse(content=SignInResponse(next=result.next).model_dump())
    response.set_cookie(
        key=SESSION_COOKIE_KEY,
        value=result.session_token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        max_age=settings.session_ttl_hours * 3600,
        path=_SESSION_COOKIE_PATH,
    )
    return response


@router.post("/signout", summary="End the current session")
async def signout(request: Request, identity: IdentityDep, settings: SettingsDep) -> JSONResponse:
    """Revoke the session (if any) and clear the cookie.  Always succeeds."""
    token = session_token_from(request.headers, request.cookies)
    if token:
        await identity.sign_out(token)

    response = JSONResponse(content={"ok": True})
    response.delete_cookie(
        key=SESSION_COOKIE_KEY,
        path=_SESSION_COOKIE_PATH,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return response


@router.get("/session", response_model=SessionResponse, summary="Describe the current session")
async def current_session(viewer: ViewerDep) -> SessionResponse:
    return SessionResponse(user_id=viewer.user_id, company_id=viewer.company_id, role=viewer.role.value)
