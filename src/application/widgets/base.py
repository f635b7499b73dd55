"""Widget renderer contract.

Each widget reads its slice of the current store snapshot plus its own
settings and loading flag, and returns a JSON-ready WidgetView. Widgets never
mutate the record; they may only change their own settings.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel

from src.application.dashboard.store import ResultStore
from src.domain.entities.dashboard import StoreSnapshot
from src.domain.entities.widgets import WidgetKind


class WidgetStatus(str, Enum):
    """What the widget shows."""

    LOADING = "loading"  # skeleton placeholders
    EMPTY = "empty"  # no data yet
    READY = "ready"


class WidgetView(BaseModel):
    """Rendered widget."""

    kind: WidgetKind
    status: WidgetStatus
    settings: dict[str, bool]
    placeholders: int = 0
    data: dict[str, Any] | None = None


class WidgetRenderer(ABC):
    """Base renderer bound to one widget kind."""

    kind: ClassVar[WidgetKind]
    placeholder_rows: ClassVar[int] = 4

    def __init__(self, store: ResultStore) -> None:
        self._store = store

    @property
    def settings(self) -> dict[str, bool]:
        return self._store.settings_for(self.kind)

    def update_setting(self, key: str, value: bool) -> dict[str, bool]:
        """Change one of this widget's settings."""
        return self._store.update_setting(self.kind, key, value)

    def render(self, snapshot: StoreSnapshot | None = None) -> WidgetView:
        """Render from ``snapshot`` (defaults to the store's current one)."""
        if snapshot is None:
            snapshot = self._store.snapshot()
        settings = dict(snapshot.settings.get(self.kind, {}))
        if snapshot.loading.get(self.kind, False):
            return WidgetView(
                kind=self.kind,
                status=WidgetStatus.LOADING,
                settings=settings,
                placeholders=self.placeholder_rows,
            )
        data = self.build(snapshot, settings)
        if data is None:
            return WidgetView(kind=self.kind, status=WidgetStatus.EMPTY, settings=settings)
        return WidgetView(kind=self.kind, status=WidgetStatus.READY, settings=settings, data=data)

    @abstractmethod
    def build(self, snapshot: StoreSnapshot, settings: dict[str, bool]) -> dict[str, Any] | None:
        """Widget data for a snapshot, or None when there is nothing to show."""
