"""Shift management endpoints (admin only).

Every successful write is committed and then announced on the change
feed, which is what keeps open rota views current.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import JSONResponse, Response

from hr_api.dependencies import AdminDep, ChangeFeedDep, CompanySessionDep
from hr_api.schemas import ShiftCreateRequest, ShiftResponse, ShiftUpdateRequest
from hr_api.services.shift_service import NotFoundError, ShiftService, ShiftValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shifts", tags=["shifts"])


def _error(exc: NotFoundError | ShiftValidationError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


@router.post("", response_model=ShiftResponse, status_code=201)
async def create_shift(
    body: ShiftCreateRequest,
    session: CompanySessionDep,
    admin: AdminDep,
    feed: ChangeFeedDep,
) -> Any:
    service = ShiftService(session, admin.company_id, feed)
    try:
        return await service.create(**body.model_dump())
    except (NotFoundError, ShiftValidationError) as exc:
        return _error(exc)


@router.patch("/{shift_id}", response_model=ShiftResponse)
async def update_shift(
    shift_id: str,
    body: ShiftUpdateRequest,
    session: CompanySessionDep,
    admin: AdminDep,
    feed: ChangeFeedDep,
) -> Any:
    service = ShiftService(session, admin.company_id, feed)
    try:
        return await service.update(shift_id, **body.model_dump(exclude_unset=True))
    except (NotFoundError, ShiftValidationError) as exc:
        return _error(exc)


@router.post("/{shift_id}/publish", response_model=ShiftResponse)
async def publish_shift(
    shift_id: str,
    session: CompanySessionDep,
    admin: AdminDep,
    feed: ChangeFeedDep,
) -> Any:
    """Make a shift visible to the employee it is assigned to."""
    service = ShiftService(session, admin.company_id, feed)
    try:
        return await service.set_published(shift_id, True)
    except NotFoundError as exc:
        return _error(exc)


@router.delete("/{shift_id}", status_code=204)
async def delete_shift(
    shift_id: str,
    session: CompanySessionDep,
    admin: AdminDep,
    feed: ChangeFeedDep,
) -> Response:
    service = ShiftService(session, admin.company_id, feed)
    try:
        await service.delete(shift_id)
    except NotFoundError as exc:
        return _error(exc)
    return Response(status_code=204)
