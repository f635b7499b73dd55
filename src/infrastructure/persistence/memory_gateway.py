"""In-memory Persistence Gateway.

Keeps every saved row per project and fans change events out to all open
feeds. Used when no hosted backend is configured, and in tests (failure
injection via ``fail_operations``).
"""

import asyncio
import logging

from src.domain.entities.analysis import ProjectMetrics, ResultRecord
from src.domain.entities.dashboard import (
    ChangeEvent,
    ChangeStream,
    RevisionedMetrics,
    RevisionedResult,
)
from src.domain.errors import PersistenceError
from src.infrastructure.persistence.change_feed import QueueChangeFeed

logger = logging.getLogger(__name__)


class InMemoryGateway:
    """Process-local stand-in for the hosted backend."""

    def __init__(self, latency: float = 0.0) -> None:
        """Initialize empty storage.

        Args:
            latency: Seconds each call sleeps before completing (simulates network).
        """
        self._results: dict[str, list[RevisionedResult]] = {}
        self._metrics: dict[str, list[RevisionedMetrics]] = {}
        self._feeds: dict[str, set[QueueChangeFeed]] = {}
        self.latency = latency
        # Operation names ("save_result", "fetch_latest_result", ...) that should fail
        self.fail_operations: set[str] = set()

    async def _enter(self, operation: str) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        if operation in self.fail_operations:
            raise PersistenceError(operation, "backend unavailable")

    async def fetch_latest_result(self, project_id: str) -> RevisionedResult | None:
        await self._enter("fetch_latest_result")
        rows = self._results.get(project_id)
        return rows[-1] if rows else None

    async def fetch_latest_metrics(self, project_id: str) -> RevisionedMetrics | None:
        await self._enter("fetch_latest_metrics")
        rows = self._metrics.get(project_id)
        return rows[-1] if rows else None

    async def save_result(
        self,
        project_id: str,
        record: ResultRecord,
        metrics: ProjectMetrics,
        revision: int,
    ) -> None:
        await self._enter("save_result")
        self._results.setdefault(project_id, []).append(
            RevisionedResult(revision=revision, record=record)
        )
        self._metrics.setdefault(project_id, []).append(
            RevisionedMetrics(revision=revision, metrics=metrics)
        )
        logger.debug("Saved result project=%s revision=%d", project_id, revision)
        self.publish(ChangeEvent(
            stream=ChangeStream.RESULT, project_id=project_id, revision=revision, record=record,
        ))
        self.publish(ChangeEvent(
            stream=ChangeStream.METRICS, project_id=project_id, revision=revision, metrics=metrics,
        ))

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every open feed of its project."""
        for feed in list(self._feeds.get(event.project_id, ())):
            feed.publish(event)

    def subscribe(self, project_id: str) -> QueueChangeFeed:
        feed = QueueChangeFeed(project_id, on_close=self._remove_feed)
        self._feeds.setdefault(project_id, set()).add(feed)
        return feed

    def subscriber_count(self, project_id: str) -> int:
        return len(self._feeds.get(project_id, ()))

    def _remove_feed(self, feed: QueueChangeFeed) -> None:
        feeds = self._feeds.get(feed.project_id)
        if feeds:
            feeds.discard(feed)

    async def close(self) -> None:
        for feeds in list(self._feeds.values()):
            for feed in list(feeds):
                await feed.close()
        self._feeds.clear()
