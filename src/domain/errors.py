"""Dashboard error taxonomy.

Scorer input is never an error. Persistence failures are recoverable and are
shown to the user without blocking local display. Caller errors (unknown
widget, setting or node) map to 4xx responses.
"""


class DashboardError(Exception):
    """Base class for dashboard errors."""


class PersistenceError(DashboardError):
    """Persistence Gateway call failed (network, storage or payload)."""

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation


class UnknownWidgetError(DashboardError, ValueError):
    """Widget kind is not one of the four known widgets."""


class UnknownSettingError(DashboardError, ValueError):
    """Setting key does not exist for the widget, or value is not a bool."""


class UnknownNodeError(DashboardError, LookupError):
    """Code tree node id not found in the current tree."""
