"""Dashboard state types: store snapshots, notifications, realtime change events."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.domain.entities.analysis import (
    ComplexityMetrics,
    ProjectMetrics,
    ResultRecord,
    TreeNode,
)
from src.domain.entities.widgets import WidgetKind


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationLevel(str, Enum):
    """Toast level shown by the UI shell."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notification(BaseModel):
    """User-visible message (toast)."""

    model_config = ConfigDict(frozen=True)

    id: int
    level: NotificationLevel
    title: str
    message: str
    created_at: datetime = Field(default_factory=_utcnow)


class StoreSnapshot(BaseModel):
    """Immutable view of the Result Store at one version.

    ``version`` increments on every mutation; ``result_revision`` and
    ``metrics_revision`` are the revisions of the data currently held.
    """

    model_config = ConfigDict(frozen=True)

    version: int = 0
    result_revision: int = 0
    metrics_revision: int = 0
    result: ResultRecord | None = None
    previous_complexity: ComplexityMetrics | None = None
    metrics: ProjectMetrics | None = None
    settings: dict[WidgetKind, dict[str, bool]] = Field(default_factory=dict)
    loading: dict[WidgetKind, bool] = Field(default_factory=dict)
    selected_node: TreeNode | None = None
    notifications: tuple[Notification, ...] = ()


class ChangeStream(str, Enum):
    """Which backend table a change came from."""

    RESULT = "result"
    METRICS = "metrics"


class RevisionedResult(BaseModel):
    """Result record as stored by the gateway, tagged with its revision."""

    model_config = ConfigDict(frozen=True)

    revision: int = Field(..., ge=0)
    record: ResultRecord


class RevisionedMetrics(BaseModel):
    """Project metrics as stored by the gateway, tagged with its revision."""

    model_config = ConfigDict(frozen=True)

    revision: int = Field(..., ge=0)
    metrics: ProjectMetrics


class ChangeEvent(BaseModel):
    """Revision-tagged snapshot delivered by the gateway change feed."""

    model_config = ConfigDict(frozen=True)

    stream: ChangeStream
    project_id: str
    revision: int = Field(..., ge=0)
    record: ResultRecord | None = None
    metrics: ProjectMetrics | None = None
