"""Weekly rota endpoints.

``GET /rota`` returns one week.  ``WS /rota/live`` keeps a
:class:`~hr_core.rota.RotaView` open for the connection and pushes a fresh
snapshot whenever any shift changes.  Client messages::

    {"action": "prev"}
    {"action": "next"}
    {"action": "filter", "department": "Kitchen"}   # null/"" clears it
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from hr_core.rota import RotaQueryEngine, RotaSnapshot, RotaView, week_window

from hr_api.dependencies import (
    ChangeFeedDep,
    CompanySessionDep,
    LiveViewerDep,
    SettingsDep,
    ViewerDep,
    get_session_factory,
)
from hr_api.schemas import RotaResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rota", tags=["rota"])


@router.get("", response_model=RotaResponse)
async def get_rota(
    session: CompanySessionDep,
    settings: SettingsDep,
    viewer: ViewerDep,
    week_start: date | None = Query(default=None, description="Any date in the wanted week; defaults to today."),
    department: str | None = Query(default=None, description="Only show shifts of this department."),
) -> RotaResponse:
    """Return the week's shifts visible to the viewer.

    Admins see every shift of their company; employees only their own
    published shifts.
    """
    window = week_window(week_start, settings.rota_tz)
    engine = RotaQueryEngine(session, viewer)
    snapshot = RotaSnapshot(
        window=window,
        shifts=await engine.fetch(window),
        employees=await engine.list_employees(),
        department=department or None,
    )
    return RotaResponse.from_snapshot(snapshot)


def _snapshot_message(snapshot: RotaSnapshot) -> dict[str, Any]:
    return {"type": "snapshot", "rota": RotaResponse.from_snapshot(snapshot).model_dump(mode="json")}


async def _reject(websocket: WebSocket, error: str) -> None:
    await websocket.send_json({"type": "error", "error": error})


@router.websocket("/live")
async def live_rota(
    websocket: WebSocket,
    viewer: LiveViewerDep,
    settings: SettingsDep,
    feed: ChangeFeedDep,
    week_start: date | None = None,
    department: str | None = None,
) -> None:
    if viewer is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()

    async def push(snapshot: RotaSnapshot) -> None:
        await websocket.send_json(_snapshot_message(snapshot))

    view = RotaView(
        get_session_factory(),
        feed,
        viewer,
        week_window(week_start, settings.rota_tz),
        department=department or None,
        on_refresh=push,
    )
    try:
        async with view:
            while True:
                try:
                    message = await websocket.receive_json()
                except ValueError:
                    await _reject(websocket, "Messages must be JSON")
                    continue
                action = message.get("action") if isinstance(message, dict) else None
                if action == "prev":
                    await view.move(-1)
                elif action == "next":
                    await view.move(1)
                elif action == "filter":
                    department = message.get("department")
                    if department is not None and not isinstance(department, str):
                        await _reject(websocket, "department must be a string or null")
                        continue
                    await push(view.set_department(department))
                else:
                    await _reject(websocket, f"Unknown action: {action!r}")
    except WebSocketDisconnect:
        logger.debug("Live rota closed for user %s", viewer.user_id)
