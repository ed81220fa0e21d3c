"""Tests for the in-process change feed."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from hr_core.state.changes import ChangeEvent, ChangeFeed, ChangeKind


def _event(table: str = "shifts", kind: ChangeKind = ChangeKind.INSERT) -> ChangeEvent:
    return ChangeEvent(table=table, kind=kind, company_id="c1", row_id="s1")


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_all_kinds_receives_every_event(self) -> None:
        feed = ChangeFeed()
        handler = AsyncMock()
        feed.subscribe("shifts", handler)

        for kind in (ChangeKind.INSERT, ChangeKind.UPDATE, ChangeKind.DELETE):
            await feed.publish(_event(kind=kind))

        assert handler.await_count == 3

    @pytest.mark.asyncio
    async def test_kind_filter(self) -> None:
        feed = ChangeFeed()
        handler = AsyncMock()
        feed.subscribe("shifts", handler, kind=ChangeKind.DELETE)

        assert await feed.publish(_event(kind=ChangeKind.INSERT)) == 0
        assert await feed.publish(_event(kind=ChangeKind.DELETE)) == 1
        handler.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_table_scope(self) -> None:
        feed = ChangeFeed()
        handler = AsyncMock()
        feed.subscribe("shifts", handler)

        await feed.publish(_event(table="employees"))
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_all_kind_rejected(self) -> None:
        with pytest.raises(ValueError):
            await ChangeFeed().publish(_event(kind=ChangeKind.ALL))


class TestRelease:
    @pytest.mark.asyncio
    async def test_released_handler_not_called(self) -> None:
        feed = ChangeFeed()
        handler = AsyncMock()
        sub = feed.subscribe("shifts", handler)

        sub.release()
        await feed.publish(_event())

        handler.assert_not_awaited()
        assert not sub.active
        assert feed.subscriber_count == 0

    def test_release_is_idempotent(self) -> None:
        feed = ChangeFeed()
        sub = feed.subscribe("shifts", AsyncMock())
        other = feed.subscribe("shifts", AsyncMock())

        sub.release()
        sub.release()

        assert feed.subscriber_count == 1
        assert other.active


class TestHandlerIsolation:
    @pytest.mark.asyncio
    async def test_failing_handler_does_not_block_others(self, caplog: pytest.LogCaptureFixture) -> None:
        feed = ChangeFeed()
        broken = AsyncMock(side_effect=RuntimeError("listener down"))
        healthy = AsyncMock()
        feed.subscribe("shifts", broken)
        feed.subscribe("shifts", healthy)

        delivered = await feed.publish(_event())

        assert delivered == 2
        healthy.assert_awaited_once()
        assert "failed" in caplog.text

    @pytest.mark.asyncio
    async def test_handler_may_release_itself(self) -> None:
        feed = ChangeFeed()
        calls: list[str] = []

        async def once(event: ChangeEvent) -> None:
            calls.append(event.row_id or "")
            sub.release()

        sub = feed.subscribe("shifts", once)
        await feed.publish(_event())
        await feed.publish(_event())

        assert calls == ["s1"]
