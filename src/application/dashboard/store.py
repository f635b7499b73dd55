"""Result Store - process-wide dashboard state with revision-based reconciliation.

Owns the current ResultRecord, project metrics, per-widget settings, loading
flags, the selected tree node and the notification log. Every mutation builds
one immutable StoreSnapshot and hands it synchronously to all subscribers, so a
subscriber never sees a record without the loading flags that changed with it.

Revisions: ``reserve_revision()`` hands out strictly increasing tokens, always
above anything the store has seen. Data is only replaced by a strictly newer
revision, so late echoes of older writes are dropped.
"""

import itertools
import logging
import threading
from collections import deque
from typing import Callable, Iterable

from src.domain.entities.analysis import ProjectMetrics, ResultRecord, TreeNode
from src.domain.entities.dashboard import (
    Notification,
    NotificationLevel,
    RevisionedMetrics,
    RevisionedResult,
    StoreSnapshot,
)
from src.domain.entities.widgets import WidgetKind, default_settings
from src.domain.errors import UnknownSettingError, UnknownWidgetError

logger = logging.getLogger(__name__)

Subscriber = Callable[[StoreSnapshot], None]


def coerce_kind(kind: WidgetKind | str) -> WidgetKind:
    """Resolve a widget kind from its value; raises UnknownWidgetError."""
    try:
        return WidgetKind(kind)
    except ValueError:
        raise UnknownWidgetError(f"Unknown widget: {kind!r}") from None


class ResultStore:
    """Dashboard state container (DI-friendly, no global singleton)."""

    def __init__(self, max_notifications: int = 20) -> None:
        """Initialize empty store with default widget settings and loading flags off."""
        self._lock = threading.RLock()
        self._subscribers: dict[int, Subscriber] = {}
        self._subscriber_ids = itertools.count(1)
        self._notification_ids = itertools.count(1)

        self._version = 0
        self._next_revision = 0
        self._result_revision = 0
        self._metrics_revision = 0
        self._result: ResultRecord | None = None
        self._previous_result: ResultRecord | None = None
        self._metrics: ProjectMetrics | None = None
        self._settings = default_settings()
        self._loading: dict[WidgetKind, bool] = {kind: False for kind in WidgetKind}
        self._selected_id: str | None = None
        self._notifications: deque[Notification] = deque(maxlen=max_notifications)
        self._snapshot = self._build_snapshot()

    # --- reads ---

    def snapshot(self) -> StoreSnapshot:
        """Current immutable snapshot."""
        with self._lock:
            return self._snapshot

    @property
    def result(self) -> ResultRecord | None:
        return self.snapshot().result

    @property
    def result_revision(self) -> int:
        return self.snapshot().result_revision

    def settings_for(self, kind: WidgetKind | str) -> dict[str, bool]:
        kind = coerce_kind(kind)
        with self._lock:
            return dict(self._settings[kind])

    # --- subscription ---

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a subscriber; returns the unsubscribe function."""
        with self._lock:
            sid = next(self._subscriber_ids)
            self._subscribers[sid] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(sid, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    # --- revisions ---

    def reserve_revision(self) -> int:
        """Next revision token for a local write."""
        with self._lock:
            self._next_revision = (
                max(self._next_revision, self._result_revision, self._metrics_revision) + 1
            )
            return self._next_revision

    # --- mutations ---

    def apply_analysis(
        self,
        record: ResultRecord,
        metrics: ProjectMetrics | None,
        revision: int,
        loading: dict[WidgetKind, bool] | None = None,
    ) -> bool:
        """Replace record and metrics together; False if ``revision`` is stale.

        Loading flags in ``loading`` are applied in the same mutation whether or
        not the data is accepted.
        """
        with self._lock:
            accepted = self._is_newer_result(revision)
            if accepted:
                self._replace_result(record, revision)
                if metrics is not None and self._is_newer_metrics(revision):
                    self._replace_metrics(metrics, revision)
            else:
                logger.debug(
                    "Discarded stale analysis revision=%d current=%d",
                    revision, self._result_revision,
                )
            if loading:
                self._merge_loading(loading)
            if not accepted and not loading:
                return False
            snapshot = self._commit()
        self._notify(snapshot)
        return accepted

    def apply_fetched(
        self,
        result: RevisionedResult | None,
        metrics: RevisionedMetrics | None,
        loading: dict[WidgetKind, bool] | None = None,
    ) -> tuple[bool, bool]:
        """Apply an initial fetch (result, metrics, loading flags) as one mutation.

        Returns which of result and metrics were accepted.
        """
        with self._lock:
            result_ok = result is not None and self._is_newer_result(result.revision)
            if result_ok:
                self._replace_result(result.record, result.revision)
            metrics_ok = metrics is not None and self._is_newer_metrics(metrics.revision)
            if metrics_ok:
                self._replace_metrics(metrics.metrics, metrics.revision)
            if loading:
                self._merge_loading(loading)
            snapshot = self._commit()
        self._notify(snapshot)
        return result_ok, metrics_ok

    def apply_result(self, record: ResultRecord, revision: int) -> bool:
        """Realtime result echo; applied only if newer than the current record."""
        with self._lock:
            if not self._is_newer_result(revision):
                logger.debug(
                    "Discarded stale result echo revision=%d current=%d",
                    revision, self._result_revision,
                )
                return False
            self._replace_result(record, revision)
            snapshot = self._commit()
        self._notify(snapshot)
        return True

    def apply_metrics(self, metrics: ProjectMetrics, revision: int) -> bool:
        """Realtime metrics echo; applied only if newer than the current metrics."""
        with self._lock:
            if not self._is_newer_metrics(revision):
                logger.debug(
                    "Discarded stale metrics echo revision=%d current=%d",
                    revision, self._metrics_revision,
                )
                return False
            self._replace_metrics(metrics, revision)
            snapshot = self._commit()
        self._notify(snapshot)
        return True

    def update_setting(self, kind: WidgetKind | str, key: str, value: bool) -> dict[str, bool]:
        """Merge one setting into a widget's settings; returns that widget's settings."""
        kind = coerce_kind(kind)
        if not isinstance(value, bool):
            raise UnknownSettingError(f"Setting {key!r} expects a bool, got {type(value).__name__}")
        with self._lock:
            current = self._settings[kind]
            if key not in current:
                raise UnknownSettingError(f"Unknown setting {key!r} for widget {kind.value!r}")
            self._settings[kind] = {**current, key: value}
            updated = dict(self._settings[kind])
            snapshot = self._commit()
        self._notify(snapshot)
        return updated

    def set_loading(self, kind: WidgetKind | str, value: bool) -> None:
        kind = coerce_kind(kind)
        with self._lock:
            self._merge_loading({kind: value})
            snapshot = self._commit()
        self._notify(snapshot)

    def set_all_loading(self, value: bool) -> None:
        with self._lock:
            self._merge_loading({kind: value for kind in WidgetKind})
            snapshot = self._commit()
        self._notify(snapshot)

    def select_node(self, node_id: str | None) -> None:
        """Select a tree node by id (single selection, last one wins).

        The snapshot resolves the id against the current tree, so a new
        analysis shows the new node, and a vanished id clears the selection.
        """
        with self._lock:
            self._selected_id = node_id
            snapshot = self._commit()
        self._notify(snapshot)

    def push_notification(
        self,
        level: NotificationLevel,
        title: str,
        message: str,
    ) -> Notification:
        """Append a user-visible notification."""
        with self._lock:
            notification = Notification(
                id=next(self._notification_ids),
                level=level,
                title=title,
                message=message,
            )
            self._notifications.append(notification)
            snapshot = self._commit()
        self._notify(snapshot)
        return notification

    def notifications(self, since_id: int = 0) -> list[Notification]:
        with self._lock:
            return [n for n in self._notifications if n.id > since_id]

    # --- internals (call with lock held) ---

    def _is_newer_result(self, revision: int) -> bool:
        return self._result is None or revision > self._result_revision

    def _is_newer_metrics(self, revision: int) -> bool:
        return self._metrics is None or revision > self._metrics_revision

    def _replace_result(self, record: ResultRecord, revision: int) -> None:
        self._previous_result = self._result
        self._result = record
        self._result_revision = revision

    def _replace_metrics(self, metrics: ProjectMetrics, revision: int) -> None:
        self._metrics = metrics
        self._metrics_revision = revision

    def _merge_loading(self, flags: dict[WidgetKind, bool]) -> None:
        for kind, value in flags.items():
            self._loading[coerce_kind(kind)] = bool(value)

    def _build_snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(
            version=self._version,
            result_revision=self._result_revision,
            metrics_revision=self._metrics_revision,
            result=self._result,
            previous_complexity=self._previous_result.complexity if self._previous_result else None,
            metrics=self._metrics,
            settings={kind: dict(values) for kind, values in self._settings.items()},
            loading=dict(self._loading),
            selected_node=self._resolve_selected(),
            notifications=tuple(self._notifications),
        )

    def _resolve_selected(self) -> TreeNode | None:
        if self._selected_id is None:
            return None
        for tree in (
            self._result.code_tree if self._result else None,
            self._metrics.code_tree if self._metrics else None,
        ):
            if tree is not None:
                return tree.find(self._selected_id)
        return None

    def _commit(self) -> StoreSnapshot:
        self._version += 1
        self._snapshot = self._build_snapshot()
        return self._snapshot

    def _notify(self, snapshot: StoreSnapshot) -> None:
        with self._lock:
            subscribers: Iterable[Subscriber] = list(self._subscribers.values())
        for callback in subscribers:
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Store subscriber failed at version=%d", snapshot.version)
