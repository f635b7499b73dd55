"""Widget kinds and their display settings."""

from enum import Enum


class WidgetKind(str, Enum):
    """The four dashboard widgets."""

    CODE_TREE = "code_tree"
    COMPLEXITY = "complexity"
    DEPENDENCY = "dependency"
    PERFORMANCE = "performance"


# Flat bool options per widget. The key set is fixed; only values change.
DEFAULT_WIDGET_SETTINGS: dict[WidgetKind, dict[str, bool]] = {
    WidgetKind.CODE_TREE: {
        "show_line_numbers": True,
        "show_file_sizes": True,
        "expanded_by_default": False,
    },
    WidgetKind.COMPLEXITY: {
        "show_trends": True,
        "show_thresholds": True,
        "show_percentages": True,
    },
    WidgetKind.DEPENDENCY: {
        "show_types": True,
        "show_details": True,
        "group_by_kind": False,
    },
    WidgetKind.PERFORMANCE: {
        "show_real_time": True,
        "show_alerts": True,
        "show_thresholds": True,
    },
}


def default_settings() -> dict[WidgetKind, dict[str, bool]]:
    """Fresh copy of the default settings for all widgets."""
    return {kind: dict(values) for kind, values in DEFAULT_WIDGET_SETTINGS.items()}
