"""FastAPI dependencies - resolved through the DI container."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.application.dashboard.session import DashboardSession
from src.application.dashboard.store import ResultStore
from src.domain.ports.config import AppConfig

limiter = Limiter(key_func=get_remote_address)


def get_config() -> AppConfig:
    """Application config from the container."""
    return get_container().config


def get_session() -> DashboardSession:
    """Dashboard session (context object) from the container."""
    return get_container().dashboard_session


def get_store() -> ResultStore:
    """Result store from the container."""
    return get_container().result_store


def configured_rate_limit() -> str:
    """Per-client limit for read endpoints, from ``security.rate_limit_requests_per_minute``."""
    return f"{get_container().config.security.rate_limit_requests_per_minute}/minute"
