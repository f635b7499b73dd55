"""Dashboard widget renderers."""

from src.application.dashboard.store import ResultStore
from src.application.widgets.base import WidgetRenderer, WidgetStatus, WidgetView
from src.application.widgets.code_tree import CodeTreeWidget
from src.application.widgets.complexity import ComplexityWidget
from src.application.widgets.dependency import DependencyWidget
from src.application.widgets.performance import PerformanceWidget
from src.domain.entities.widgets import WidgetKind

WIDGET_CLASSES: dict[WidgetKind, type[WidgetRenderer]] = {
    WidgetKind.CODE_TREE: CodeTreeWidget,
    WidgetKind.COMPLEXITY: ComplexityWidget,
    WidgetKind.DEPENDENCY: DependencyWidget,
    WidgetKind.PERFORMANCE: PerformanceWidget,
}


def build_widgets(store: ResultStore) -> dict[WidgetKind, WidgetRenderer]:
    """Fresh renderer per widget kind (local UI state starts empty)."""
    return {kind: cls(store) for kind, cls in WIDGET_CLASSES.items()}


__all__ = [
    "WidgetRenderer",
    "WidgetStatus",
    "WidgetView",
    "CodeTreeWidget",
    "ComplexityWidget",
    "DependencyWidget",
    "PerformanceWidget",
    "WIDGET_CLASSES",
    "build_widgets",
]
