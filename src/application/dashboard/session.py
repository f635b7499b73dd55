"""Dashboard session - analysis pipeline and realtime reconciliation.

Explicitly constructed context object: created at application start
(``mount``), torn down at shutdown (``close``). Owns the widget renderers and
connects the Result Store with the Persistence Gateway.

Submit: reserve revision → score off the event loop → apply locally →
save in the background. A failed save never rolls back the local record; it
becomes an error notification instead.
"""

import asyncio
import logging

from src.application.dashboard.dto import MountOutcome, SubmitOutcome
from src.application.dashboard.store import ResultStore, coerce_kind
from src.application.widgets import WidgetRenderer, build_widgets
from src.domain.entities.analysis import AnalysisOptions, ProjectMetrics, ResultRecord
from src.domain.entities.dashboard import ChangeEvent, ChangeStream, NotificationLevel
from src.domain.entities.widgets import WidgetKind
from src.domain.errors import PersistenceError
from src.domain.ports.persistence import ChangeFeed, PersistencePort
from src.domain.services.heuristic_scorer import build_metrics, score

logger = logging.getLogger(__name__)


class DashboardSession:
    """Analysis pipeline for one project."""

    def __init__(
        self,
        store: ResultStore,
        gateway: PersistencePort,
        project_id: str,
        file_name: str = "main.py",
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._project_id = project_id
        self._file_name = file_name
        self._widgets = build_widgets(store)
        self._pending_saves: set[asyncio.Task] = set()
        self._feed: ChangeFeed | None = None
        self._feed_task: asyncio.Task | None = None

    @property
    def store(self) -> ResultStore:
        return self._store

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def mounted(self) -> bool:
        return self._feed_task is not None and not self._feed_task.done()

    def widget(self, kind: WidgetKind | str) -> WidgetRenderer:
        return self._widgets[coerce_kind(kind)]

    @property
    def widgets(self) -> dict[WidgetKind, WidgetRenderer]:
        return dict(self._widgets)

    # --- analysis ---

    async def submit(self, text: str, options: AnalysisOptions | None = None) -> SubmitOutcome:
        """Score text, make it the current record, and persist it in the background."""
        options = options or AnalysisOptions()
        revision = self._store.reserve_revision()
        record = await asyncio.to_thread(score, text, options, self._file_name)
        metrics = build_metrics(text, record)
        applied = self._store.apply_analysis(record, metrics, revision)
        if applied:
            logger.info(
                "Analysis applied revision=%d lines=%d findings=%d",
                revision, record.complexity.lines_of_code, record.finding_count,
            )
            self._store.push_notification(
                NotificationLevel.SUCCESS,
                "Analysis Complete",
                "Your code has been analyzed successfully.",
            )
        else:
            logger.info("Analysis revision=%d superseded by a newer result", revision)
        self._schedule_save(record, metrics, revision)
        return SubmitOutcome(revision=revision, applied=applied, result=record)

    def _schedule_save(self, record: ResultRecord, metrics: ProjectMetrics, revision: int) -> None:
        task = asyncio.create_task(self._save(record, metrics, revision))
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    async def _save(self, record: ResultRecord, metrics: ProjectMetrics, revision: int) -> bool:
        try:
            await self._gateway.save_result(self._project_id, record, metrics, revision)
        except PersistenceError as e:
            logger.warning("Saving revision=%d failed: %s", revision, e)
            self._store.push_notification(
                NotificationLevel.ERROR,
                "Analysis not saved",
                f"Results are shown locally but could not be saved: {e}",
            )
            return False
        return True

    async def flush(self) -> None:
        """Wait for all background saves to finish."""
        while self._pending_saves:
            results = await asyncio.gather(*list(self._pending_saves), return_exceptions=True)
            for item in results:
                if isinstance(item, BaseException) and not isinstance(item, asyncio.CancelledError):
                    logger.error("Background save crashed", exc_info=item)

    # --- mount / realtime ---

    async def mount(self) -> MountOutcome:
        """(Re)mount: reset widget UI state, load latest data, follow changes."""
        await self._stop_feed()
        self._widgets = build_widgets(self._store)
        self._store.set_all_loading(True)

        # Subscribe before fetching so no change between the two is lost.
        self._feed = self._gateway.subscribe(self._project_id)
        self._feed_task = asyncio.create_task(self._consume(self._feed))

        fetch_error = None
        result = metrics = None
        try:
            result, metrics = await asyncio.gather(
                self._gateway.fetch_latest_result(self._project_id),
                self._gateway.fetch_latest_metrics(self._project_id),
            )
        except PersistenceError as e:
            fetch_error = str(e)
            logger.warning("Initial fetch failed for project=%s: %s", self._project_id, e)

        self._store.apply_fetched(result, metrics, loading={kind: False for kind in WidgetKind})
        if fetch_error:
            self._store.push_notification(
                NotificationLevel.WARNING,
                "Could not load saved analysis",
                fetch_error,
            )
        snapshot = self._store.snapshot()
        logger.info(
            "Dashboard mounted project=%s result_revision=%d metrics_revision=%d",
            self._project_id, snapshot.result_revision, snapshot.metrics_revision,
        )
        return MountOutcome(
            result_revision=snapshot.result_revision,
            metrics_revision=snapshot.metrics_revision,
            has_result=snapshot.result is not None,
            has_metrics=snapshot.metrics is not None,
            fetch_error=fetch_error,
        )

    def apply_change(self, event: ChangeEvent) -> bool:
        """Apply one realtime change with latest-revision-wins."""
        if event.project_id != self._project_id:
            return False
        if event.stream is ChangeStream.RESULT and event.record is not None:
            return self._store.apply_result(event.record, event.revision)
        if event.stream is ChangeStream.METRICS and event.metrics is not None:
            return self._store.apply_metrics(event.metrics, event.revision)
        return False

    async def _consume(self, feed: ChangeFeed) -> None:
        async for event in feed:
            self.apply_change(event)

    async def _stop_feed(self) -> None:
        if self._feed is not None:
            await self._feed.close()
        if self._feed_task is not None:
            try:
                await asyncio.wait_for(self._feed_task, timeout=5)
            except asyncio.TimeoutError:
                self._feed_task.cancel()
        self._feed = None
        self._feed_task = None

    async def close(self) -> None:
        """Stop following changes and wait for outstanding saves."""
        await self._stop_feed()
        await self.flush()
        logger.info("Dashboard session closed project=%s", self._project_id)
