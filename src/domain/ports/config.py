"""Config Port - interface for configuration access."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = ["http://localhost:5173"]


class PersistenceConfig(BaseModel):
    """Persistence Gateway selection and connection settings."""

    backend: str = "memory"  # "memory" | "rest"
    base_url: str = "http://localhost:54321"
    api_key: str = ""
    timeout: float = 10.0
    # Change feed of the REST backend is polled; seconds between polls.
    poll_interval: float = 2.0
    results_table: str = "analysis_results"
    metrics_table: str = "project_metrics"

    model_config = ConfigDict(extra="ignore")


class AnalysisConfig(BaseModel):
    """Heuristic scorer settings."""

    file_name: str = "main.py"
    max_text_length: int = 500_000


class DashboardConfig(BaseModel):
    """Dashboard session settings."""

    project_id: str = "default-project"
    max_notifications: int = 20
    # Fetch latest result from the gateway when the app starts.
    mount_on_startup: bool = True


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    security: SecurityConfig = SecurityConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    analysis: AnalysisConfig = AnalysisConfig()
    dashboard: DashboardConfig = DashboardConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout. Rotation when file exceeds max_mb.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3


class ConfigPort(Protocol):
    """Interface for configuration providers."""

    def get_config(self) -> AppConfig:
        """Get the full application configuration."""
        ...
