"""Dependency Injection Container - centralized service management."""

from functools import cached_property

from src.application.dashboard.session import DashboardSession
from src.application.dashboard.store import ResultStore
from src.domain.ports.config import AppConfig
from src.domain.ports.persistence import PersistencePort
from src.infrastructure.config import load_config


class Container:
    """Dependency Injection Container with lazy initialization.

    All dependencies are created on first access and cached.
    The dashboard session is the application's context object: built here,
    mounted in the FastAPI lifespan and closed on shutdown.

    Usage:
        container = Container()
        session = container.dashboard_session
    """

    def __init__(self, config: AppConfig | None = None, gateway: PersistencePort | None = None):
        """Initialize container with optional config and gateway overrides."""
        self._config_override = config
        self._gateway_override = gateway

    @cached_property
    def config(self) -> AppConfig:
        """Application configuration."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def gateway(self) -> PersistencePort:
        """Persistence gateway based on config backend."""
        if self._gateway_override is not None:
            return self._gateway_override
        if self.config.persistence.backend == "rest":
            from src.infrastructure.persistence.rest_gateway import RestGateway
            return RestGateway(self.config.persistence)

        from src.infrastructure.persistence.memory_gateway import InMemoryGateway
        return InMemoryGateway()

    @cached_property
    def result_store(self) -> ResultStore:
        """Result store (current record, widget settings, loading flags)."""
        return ResultStore(max_notifications=self.config.dashboard.max_notifications)

    @cached_property
    def dashboard_session(self) -> DashboardSession:
        """Dashboard session for the configured project."""
        return DashboardSession(
            store=self.result_store,
            gateway=self.gateway,
            project_id=self.config.dashboard.project_id,
            file_name=self.config.analysis.file_name,
        )

    async def shutdown(self) -> None:
        """Close the session and the gateway, if they were created."""
        if "dashboard_session" in self.__dict__:
            await self.dashboard_session.close()
        if "gateway" in self.__dict__:
            await self.gateway.close()

    def reset(self) -> None:
        """Reset all cached instances (useful for testing)."""
        # Clear cached_property values
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get or create global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Install a prepared container (tests, embedding)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset global container (for testing)."""
    global _container
    if _container:
        _container.reset()
    _container = None
