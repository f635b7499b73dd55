"""Queue-backed change feed shared by the persistence gateways."""

import asyncio
import logging
from typing import Callable

from src.domain.entities.dashboard import ChangeEvent

logger = logging.getLogger(__name__)

_CLOSED = object()


class QueueChangeFeed:
    """Async iterator over ChangeEvents pushed with publish().

    Usage:
        feed = gateway.subscribe("project-1")
        async for event in feed:
            ...
        await feed.close()  # from elsewhere; iteration then stops
    """

    def __init__(
        self,
        project_id: str,
        on_close: Callable[["QueueChangeFeed"], None] | None = None,
    ) -> None:
        """Initialize an open feed for one project."""
        self.project_id = project_id
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: ChangeEvent) -> None:
        """Enqueue an event; ignored once the feed is closed."""
        if self._closed:
            return
        self._queue.put_nowait(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            self._on_close(self)
        logger.debug("Change feed closed for project=%s", self.project_id)

    def __aiter__(self) -> "QueueChangeFeed":
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item
