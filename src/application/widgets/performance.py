"""Performance widget - resource figures against thresholds."""

from typing import Any

from src.application.widgets.base import WidgetRenderer
from src.domain.entities.dashboard import StoreSnapshot
from src.domain.entities.widgets import WidgetKind

# Share of the threshold above which a row is flagged
ALERT_RATIO = 80.0


class PerformanceWidget(WidgetRenderer):
    kind = WidgetKind.PERFORMANCE

    def build(self, snapshot: StoreSnapshot, settings: dict[str, bool]) -> dict[str, Any] | None:
        if snapshot.metrics is None:
            return None
        perf = snapshot.metrics.performance
        # (key, label, value, unit, threshold)
        figures = [
            ("cpu", "CPU Usage", perf.cpu_usage, "%", 100.0),
            ("memory", "Memory Usage", perf.memory_usage, "KB", perf.memory_total),
            ("latency", "Response Time", perf.response_time, "ms", 1000.0),
            ("throughput", "Requests/sec", perf.requests_per_second, "req/s", 1000.0),
        ]
        rows = []
        alerts = []
        for key, label, value, unit, threshold in figures:
            progress = value / threshold * 100
            row: dict[str, Any] = {
                "key": key,
                "name": label,
                "value": value,
                "unit": unit,
                "progress": round(min(100.0, progress), 1),
                "over_threshold": progress > ALERT_RATIO,
            }
            if settings.get("show_thresholds"):
                row["threshold"] = {"min": 0, "max": threshold}
            if row["over_threshold"]:
                alerts.append(f"{label} at {progress:.1f}% of threshold ({value} {unit})")
            rows.append(row)
        data: dict[str, Any] = {
            "metrics": rows,
            "time_complexity": perf.time_complexity,
            "space_complexity": perf.space_complexity,
            "execution_time_ms": perf.execution_time,
        }
        if settings.get("show_alerts"):
            data["alerts"] = alerts
        if settings.get("show_real_time"):
            data["revision"] = snapshot.metrics_revision
        return data
