"""In-process change feed for live report lists and comment threads.

Subscribers get a bounded queue of change events. The WebSocket views
re-fetch the whole collection on every event instead of applying the
delta, trading efficiency for simplicity at campus-sized volumes.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..stores.base import utcnow

logger = logging.getLogger(__name__)


class ChangeType(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ReportChange:
    """One write to a watched table."""
    table: str
    change_type: ChangeType
    record_id: str
    report_id: str | None = None
    reported_by: str | None = None
    occurred_at: datetime = field(default_factory=utcnow)


@dataclass(eq=False)
class _Subscription:
    table: str
    filters: dict[str, str]
    queue: asyncio.Queue

    def wants(self, change: ReportChange) -> bool:
        if change.table != self.table:
            return False
        return all(getattr(change, key, None) == value for key, value in self.filters.items())


class ReportChangeFeed:
    """Fan a write out to every open subscription on the same table."""

    def __init__(self, max_pending: int = 32):
        self._max_pending = max_pending
        self._subscriptions: set[_Subscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, change: ReportChange) -> int:
        """Deliver ``change`` to matching subscribers; returns how many got it."""
        delivered = 0
        for subscription in list(self._subscriptions):
            if not subscription.wants(change):
                continue
            try:
                subscription.queue.put_nowait(change)
                delivered += 1
            except asyncio.QueueFull:
                # A slow consumer will re-fetch everything on its next
                # event anyway, so dropping is harmless.
                logger.debug(f"Dropping {change.change_type} on {change.table} for a slow subscriber")
        return delivered

    @asynccontextmanager
    async def subscribe(self, table: str, **filters: str) -> AsyncIterator[asyncio.Queue]:
        """Open a subscription for the lifetime of the ``async with`` block."""
        subscription = _Subscription(
            table=table,
            filters={k: v for k, v in filters.items() if v is not None},
            queue=asyncio.Queue(maxsize=self._max_pending),
        )
        self._subscriptions.add(subscription)
        logger.debug(f"Subscribed to {table} {subscription.filters}; total {self.subscriber_count}")
        try:
            yield subscription.queue
        finally:
            self._subscriptions.discard(subscription)
            logger.debug(f"Unsubscribed from {table}; total {self.subscriber_count}")
