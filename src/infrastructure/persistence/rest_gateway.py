"""Hosted backend gateway - PostgREST-style tables over HTTP.

Tables:
- analysis_results: project_id, revision, complexity_metrics, security_issues,
  style_issues, documentation_issues, created_at
- project_metrics: project_id, revision, code_tree, dependency_graph,
  performance_metrics, created_at

Production-ready with:
- Retry logic with exponential backoff on network errors
- Row validation into domain models
- Change feed by polling the latest revision of both tables
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.domain.entities.analysis import (
    ComplexityMetrics,
    Finding,
    Module,
    PerformanceMetrics,
    ProjectMetrics,
    ResultRecord,
    TreeNode,
)
from src.domain.entities.dashboard import (
    ChangeEvent,
    ChangeStream,
    RevisionedMetrics,
    RevisionedResult,
)
from src.domain.errors import PersistenceError
from src.domain.ports.config import PersistenceConfig
from src.infrastructure.persistence.change_feed import QueueChangeFeed

logger = logging.getLogger(__name__)


def _dump(model) -> Any:
    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


def result_to_row(project_id: str, record: ResultRecord, revision: int) -> dict:
    """Serialize a result record into an analysis_results row."""
    return {
        "project_id": project_id,
        "revision": revision,
        "complexity_metrics": _dump(record.complexity),
        "security_issues": [_dump(f) for f in record.security],
        "style_issues": [_dump(f) for f in record.style],
        "documentation_issues": [_dump(f) for f in record.documentation],
    }


def metrics_to_row(project_id: str, metrics: ProjectMetrics, revision: int) -> dict:
    """Serialize project metrics into a project_metrics row."""
    return {
        "project_id": project_id,
        "revision": revision,
        "code_tree": _dump(metrics.code_tree) if metrics.code_tree else None,
        "dependency_graph": [_dump(m) for m in metrics.dependency_graph],
        "performance_metrics": _dump(metrics.performance),
    }


def row_to_result(row: dict) -> RevisionedResult:
    """Parse an analysis_results row. Raises ValidationError on bad payloads."""
    record = ResultRecord(
        complexity=ComplexityMetrics.model_validate(row.get("complexity_metrics") or {}),
        security=tuple(Finding.model_validate(f) for f in row.get("security_issues") or []),
        style=tuple(Finding.model_validate(f) for f in row.get("style_issues") or []),
        documentation=tuple(
            Finding.model_validate(f) for f in row.get("documentation_issues") or []
        ),
    )
    return RevisionedResult(revision=int(row.get("revision") or 0), record=record)


def row_to_metrics(row: dict) -> RevisionedMetrics:
    """Parse a project_metrics row. Raises ValidationError on bad payloads."""
    tree_raw = row.get("code_tree")
    metrics = ProjectMetrics(
        code_tree=TreeNode.model_validate(tree_raw) if tree_raw else None,
        dependency_graph=tuple(Module.model_validate(m) for m in row.get("dependency_graph") or []),
        performance=PerformanceMetrics.model_validate(row.get("performance_metrics") or {}),
    )
    return RevisionedMetrics(revision=int(row.get("revision") or 0), metrics=metrics)


class RestGateway:
    """Persistence gateway for a hosted PostgREST-compatible backend."""

    def __init__(
        self,
        config: PersistenceConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize with persistence config.

        Args:
            config: Connection settings (base_url, api_key, tables, poll interval).
            transport: Optional httpx transport (tests use httpx.MockTransport).
        """
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["apikey"] = config.api_key
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._pollers: dict[QueueChangeFeed, asyncio.Task] = {}

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self._base_url}/rest/v1",
                timeout=self._config.timeout,
                headers=self._headers,
                transport=self._transport,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        table: str,
        params: dict | None = None,
        json: Any = None,
        headers: dict | None = None,
    ) -> httpx.Response:
        """Perform one request. Retries up to 3 times on network errors."""
        resp = await self._get_client().request(
            method, f"/{table}", params=params, json=json, headers=headers,
        )
        resp.raise_for_status()
        return resp

    async def _call(self, operation: str, method: str, table: str, **kwargs) -> httpx.Response:
        """Run a request, mapping transport and HTTP failures to PersistenceError."""
        try:
            return await self._request(method, table, **kwargs)
        except httpx.HTTPStatusError as e:
            logger.error(
                "Backend %s error %s: %s",
                operation, e.response.status_code, e.response.text[:200],
            )
            raise PersistenceError(operation, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            logger.warning("Backend %s timed out after %ss", operation, self._config.timeout)
            raise PersistenceError(operation, "timeout") from e
        except httpx.HTTPError as e:
            logger.warning("Backend %s network error: %s", operation, e)
            raise PersistenceError(operation, str(e) or type(e).__name__) from e

    async def _latest_row(self, operation: str, table: str, project_id: str) -> dict | None:
        resp = await self._call(
            operation,
            "GET",
            table,
            params={
                "project_id": f"eq.{project_id}",
                "select": "*",
                "order": "created_at.desc",
                "limit": "1",
            },
        )
        try:
            rows = resp.json()
        except ValueError as e:
            raise PersistenceError(operation, "invalid JSON response") from e
        if not isinstance(rows, list):
            raise PersistenceError(operation, "unexpected response shape")
        return rows[0] if rows else None

    async def fetch_latest_result(self, project_id: str) -> RevisionedResult | None:
        row = await self._latest_row("fetch_latest_result", self._config.results_table, project_id)
        if row is None:
            return None
        try:
            return row_to_result(row)
        except (ValidationError, TypeError, ValueError) as e:
            raise PersistenceError("fetch_latest_result", f"invalid row: {e}") from e

    async def fetch_latest_metrics(self, project_id: str) -> RevisionedMetrics | None:
        row = await self._latest_row("fetch_latest_metrics", self._config.metrics_table, project_id)
        if row is None:
            return None
        try:
            return row_to_metrics(row)
        except (ValidationError, TypeError, ValueError) as e:
            raise PersistenceError("fetch_latest_metrics", f"invalid row: {e}") from e

    async def save_result(
        self,
        project_id: str,
        record: ResultRecord,
        metrics: ProjectMetrics,
        revision: int,
    ) -> None:
        prefer = {"Prefer": "return=minimal"}
        await self._call(
            "save_result",
            "POST",
            self._config.results_table,
            json=result_to_row(project_id, record, revision),
            headers=prefer,
        )
        await self._call(
            "save_result",
            "POST",
            self._config.metrics_table,
            json=metrics_to_row(project_id, metrics, revision),
            headers=prefer,
        )
        logger.info("Saved result project=%s revision=%d", project_id, revision)

    def subscribe(self, project_id: str) -> QueueChangeFeed:
        """Open a polling change feed. Must be called from a running event loop."""
        feed = QueueChangeFeed(project_id, on_close=self._stop_poller)
        self._pollers[feed] = asyncio.create_task(self._poll(feed))
        return feed

    async def _latest_revisions(self, project_id: str) -> tuple[
        RevisionedResult | None, RevisionedMetrics | None
    ]:
        return await asyncio.gather(
            self.fetch_latest_result(project_id),
            self.fetch_latest_metrics(project_id),
        )

    async def _poll(self, feed: QueueChangeFeed) -> None:
        """Emit rows newer than those present when the feed was opened."""
        seen_result = seen_metrics = -1
        baseline = True
        while not feed.closed:
            try:
                result, metrics = await self._latest_revisions(feed.project_id)
            except PersistenceError as e:
                logger.warning("Change feed poll failed for project=%s: %s", feed.project_id, e)
            else:
                result_rev = result.revision if result else -1
                metrics_rev = metrics.revision if metrics else -1
                if not baseline:
                    if result and result_rev > seen_result:
                        feed.publish(ChangeEvent(
                            stream=ChangeStream.RESULT,
                            project_id=feed.project_id,
                            revision=result_rev,
                            record=result.record,
                        ))
                    if metrics and metrics_rev > seen_metrics:
                        feed.publish(ChangeEvent(
                            stream=ChangeStream.METRICS,
                            project_id=feed.project_id,
                            revision=metrics_rev,
                            metrics=metrics.metrics,
                        ))
                seen_result = max(seen_result, result_rev)
                seen_metrics = max(seen_metrics, metrics_rev)
                baseline = False
            await asyncio.sleep(self._config.poll_interval)

    def _stop_poller(self, feed: QueueChangeFeed) -> None:
        task = self._pollers.pop(feed, None)
        if task is not None:
            task.cancel()

    async def close(self) -> None:
        """Stop pollers and close the HTTP client (call during app shutdown)."""
        for feed in list(self._pollers):
            await feed.close()
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
