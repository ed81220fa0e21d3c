"""Tests for hr_api/hr_api/routers/shifts.py (admin shift management)."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestCreateShift:
    @pytest.mark.asyncio
    async def test_admin_creates_shift(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.post(
            "/api/v1/shifts",
            json={
                "employee_id": seed.bob_employee_id,
                "start_time": "2026-03-05T08:00:00Z",
                "end_time": "2026-03-05T12:00:00Z",
                "role": "Bartender",
            },
            headers=_auth(seed.admin_token),
        )

        assert resp.status_code == 201
        body = resp.json()
        assert body["department"] == "Bar"
        assert body["role"] == "Bartender"
        assert body["published"] is False

    @pytest.mark.asyncio
    async def test_end_before_start_is_422(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.post(
            "/api/v1/shifts",
            json={
                "employee_id": seed.bob_employee_id,
                "start_time": "2026-03-05T12:00:00Z",
                "end_time": "2026-03-05T08:00:00Z",
            },
            headers=_auth(seed.admin_token),
        )

        assert resp.status_code == 422
        assert resp.json() == {"error": "start_time must be before end_time"}

    @pytest.mark.asyncio
    async def test_unknown_employee_is_404(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.post(
            "/api/v1/shifts",
            json={"employee_id": "ghost", "start_time": "2026-03-05T08:00:00Z", "end_time": "2026-03-05T12:00:00Z"},
            headers=_auth(seed.admin_token),
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_employee_forbidden(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.post(
            "/api/v1/shifts",
            json={
                "employee_id": seed.alice_employee_id,
                "start_time": "2026-03-05T08:00:00Z",
                "end_time": "2026-03-05T12:00:00Z",
            },
            headers=_auth(seed.alice_token),
        )
        assert resp.status_code == 403


class TestModifyShift:
    @pytest.mark.asyncio
    async def test_publish_makes_shift_visible_to_employee(self, client: AsyncClient, seed: Any) -> None:
        rota_url = "/api/v1/rota?week_start=2026-03-02"
        before = await client.get(rota_url, headers=_auth(seed.alice_token))
        assert len(before.json()["shifts"]) == 1

        resp = await client.post(f"/api/v1/shifts/{seed.shift_ids['alice_tue']}/publish", headers=_auth(seed.admin_token))
        assert resp.status_code == 200
        assert resp.json()["published"] is True

        after = await client.get(rota_url, headers=_auth(seed.alice_token))
        assert [s["id"] for s in after.json()["shifts"]] == [seed.shift_ids["alice_mon"], seed.shift_ids["alice_tue"]]

    @pytest.mark.asyncio
    async def test_patch_partial(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.patch(
            f"/api/v1/shifts/{seed.shift_ids['bob_wed']}",
            json={"notes": "Stocktake", "end_time": "2026-03-04T19:00:00Z"},
            headers=_auth(seed.admin_token),
        )

        assert resp.status_code == 200
        body = resp.json()
        assert body["notes"] == "Stocktake"
        assert body["end_time"].startswith("2026-03-04T19:00:00")
        assert body["published"] is True

    @pytest.mark.asyncio
    async def test_other_company_shift_is_404(self, client: AsyncClient, seed: Any) -> None:
        resp = await client.patch(
            f"/api/v1/shifts/{seed.shift_ids['zed_mon']}", json={"notes": "x"}, headers=_auth(seed.admin_token)
        )
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, seed: Any) -> None:
        url = f"/api/v1/shifts/{seed.shift_ids['bob_wed']}"
        assert (await client.delete(url, headers=_auth(seed.admin_token))).status_code == 204
        assert (await client.delete(url, headers=_auth(seed.admin_token))).status_code == 404
