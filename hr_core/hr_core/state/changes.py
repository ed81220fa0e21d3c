"""In-process change notifications for state-store tables.

The rota view needs to know when any shift changes so it can re-fetch its
window.  Writers publish a :class:`ChangeEvent` after their transaction
commits; subscribers register per table and per event kind (or ``ALL``).

Handler errors are logged but never propagate to the publisher, so a
broken listener cannot fail the write that triggered it.

Usage::

    feed = ChangeFeed()
    sub = feed.subscribe("shifts", on_change)        # every event kind
    await feed.publish(ChangeEvent(table="shifts", kind=ChangeKind.INSERT, ...))
    sub.release()
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Row-level change kinds.  ``ALL`` is only valid as a subscription filter."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    ALL = "*"


class ChangeEvent(BaseModel):
    """A committed row change."""

    table: str
    kind: ChangeKind
    company_id: str | None = None
    row_id: str | None = None
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    record: dict[str, Any] = Field(default_factory=dict)


ChangeHandler = Callable[[ChangeEvent], Awaitable[None]]


class Subscription:
    """Handle returned by :meth:`ChangeFeed.subscribe`.

    ``release()`` detaches the handler; calling it more than once is safe.
    """

    def __init__(self, feed: ChangeFeed, key: int, table: str, kind: ChangeKind) -> None:
        self._feed = feed
        self._key = key
        self.table = table
        self.kind = kind
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        if not self._active:
            return
        self._active = False
        self._feed._remove(self._key)
        logger.debug("Released subscription %d on %s (%s)", self._key, self.table, self.kind.value)


class ChangeFeed:
    """Pub/sub of committed changes scoped by table and event kind."""

    def __init__(self) -> None:
        self._handlers: dict[int, tuple[str, ChangeKind, ChangeHandler]] = {}
        self._ids = itertools.count(1)

    def subscribe(
        self,
        table: str,
        handler: ChangeHandler,
        *,
        kind: ChangeKind = ChangeKind.ALL,
    ) -> Subscription:
        """Register *handler* for changes on *table*.

        Parameters
        ----------
        table:
            Table name the subscription is scoped to.
        handler:
            Async callable receiving each matching :class:`ChangeEvent`.
        kind:
            Restrict to one change kind; ``ChangeKind.ALL`` receives all.
        """
        key = next(self._ids)
        self._handlers[key] = (table, kind, handler)
        logger.debug("Subscription %d registered on %s (%s)", key, table, kind.value)
        return Subscription(self, key, table, kind)

    def _remove(self, key: int) -> None:
        self._handlers.pop(key, None)

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver *event* to every matching handler.

        Returns the number of handlers invoked.  Exceptions raised by
        handlers are logged, not raised.
        """
        if event.kind is ChangeKind.ALL:
            raise ValueError("ChangeKind.ALL is a subscription filter, not an event kind")

        matching = [
            handler
            for table, kind, handler in list(self._handlers.values())
            if table == event.table and kind in (ChangeKind.ALL, event.kind)
        ]
        if not matching:
            return 0

        async def _safe_call(handler: ChangeHandler) -> None:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "Change handler %s failed for %s on %s",
                    getattr(handler, "__name__", repr(handler)),
                    event.kind.value,
                    event.table,
                )

        await asyncio.gather(*[_safe_call(h) for h in matching])
        return len(matching)

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        return len(self._handlers)
