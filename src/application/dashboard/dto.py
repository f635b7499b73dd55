"""Dashboard DTOs."""

from pydantic import BaseModel, Field

from src.domain.entities.analysis import AnalysisOptions, ResultRecord


class AnalysisRequest(BaseModel):
    """Request to analyze pasted or uploaded source text."""

    text: str
    options: AnalysisOptions = AnalysisOptions()


class SubmitOutcome(BaseModel):
    """Result of a local submit. Persistence runs in the background."""

    revision: int
    applied: bool  # False when a newer submit already replaced it
    result: ResultRecord


class MountOutcome(BaseModel):
    """Result of (re)mounting the dashboard."""

    result_revision: int
    metrics_revision: int
    has_result: bool
    has_metrics: bool
    fetch_error: str | None = None


class SettingUpdate(BaseModel):
    """Single widget setting change."""

    key: str = Field(..., min_length=1, max_length=100)
    value: bool
