"""Persistence Port - durable storage and change notification of analysis results.

Implemented by the hosted backend adapter and by the in-memory gateway.
Authentication and project identity are the adapter's concern; the core only
passes an opaque project id.
"""

from typing import AsyncIterator, Protocol

from src.domain.entities.analysis import ProjectMetrics, ResultRecord
from src.domain.entities.dashboard import ChangeEvent, RevisionedMetrics, RevisionedResult


class ChangeFeed(Protocol):
    """Channel of revision-tagged change events for one project."""

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        ...

    async def close(self) -> None:
        """Unsubscribe; iteration ends after pending events are drained."""
        ...


class PersistencePort(Protocol):
    """Interface for persistence gateways. All failures raise PersistenceError."""

    async def fetch_latest_result(self, project_id: str) -> RevisionedResult | None:
        """Latest stored result record, or None."""
        ...

    async def fetch_latest_metrics(self, project_id: str) -> RevisionedMetrics | None:
        """Latest stored project metrics, or None."""
        ...

    async def save_result(
        self,
        project_id: str,
        record: ResultRecord,
        metrics: ProjectMetrics,
        revision: int,
    ) -> None:
        """Store a result record and its metrics under ``revision``."""
        ...

    def subscribe(self, project_id: str) -> ChangeFeed:
        """Open a change feed for the project."""
        ...

    async def close(self) -> None:
        """Release connections."""
        ...
