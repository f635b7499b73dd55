"""Complexity widget - four scores as progress bars."""

from typing import Any

from src.application.widgets.base import WidgetRenderer
from src.domain.entities.dashboard import StoreSnapshot
from src.domain.entities.widgets import WidgetKind

# (field, label, bar maximum)
COMPLEXITY_METRICS: list[tuple[str, str, int]] = [
    ("cyclomatic_complexity", "Cyclomatic Complexity", 30),
    ("cognitive_complexity", "Cognitive Complexity", 40),
    ("maintainability_index", "Maintainability Index", 100),
    ("lines_of_code", "Lines of Code", 1000),
]


class ComplexityWidget(WidgetRenderer):
    kind = WidgetKind.COMPLEXITY

    def build(self, snapshot: StoreSnapshot, settings: dict[str, bool]) -> dict[str, Any] | None:
        if snapshot.result is None:
            return None
        complexity = snapshot.result.complexity
        previous = snapshot.previous_complexity
        metrics = []
        for field, label, max_value in COMPLEXITY_METRICS:
            value = getattr(complexity, field)
            percent = value / max_value * 100
            item: dict[str, Any] = {
                "key": field,
                "name": label,
                "value": value,
                "progress": round(min(100.0, percent), 1),
            }
            if settings.get("show_percentages"):
                item["percent"] = round(percent, 1)
            if settings.get("show_thresholds"):
                item["threshold"] = {"min": 0, "max": max_value}
            if settings.get("show_trends"):
                item["change"] = value - getattr(previous, field) if previous else 0
            metrics.append(item)
        result = snapshot.result
        return {
            "metrics": metrics,
            "findings": {
                "security": len(result.security),
                "style": len(result.style),
                "documentation": len(result.documentation),
            },
        }
