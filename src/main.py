"""Application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import get_container
from src.api.dependencies import configured_rate_limit, limiter
from src.api.routes.analysis import router as analysis_router
from src.api.routes.dashboard import router as dashboard_router
from src.api.routes.widgets import router as widgets_router
from src.shared.logging import setup_logging

log = structlog.get_logger()


def _apply_logging_config(container):
    """Apply logging from container config (stdout + optional file)."""
    c = container.config
    setup_logging(
        level=c.log_level,
        file_path=c.log_file or "",
        rotation_max_mb=c.log_rotation_max_mb,
        rotation_backups=c.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load config, setup logging, mount the dashboard session."""
    container = get_container()
    _apply_logging_config(container)
    log.info(
        "startup_begin",
        persistence_backend=container.config.persistence.backend,
        project_id=container.config.dashboard.project_id,
    )
    if container.config.dashboard.mount_on_startup:
        outcome = await container.dashboard_session.mount()
        if outcome.fetch_error:
            # Backend may be down at startup; realtime feed and next submit recover
            log.warning("initial_fetch_failed", reason=outcome.fetch_error)
        else:
            log.info("dashboard_mounted", has_result=outcome.has_result)
    log.info("startup_complete")
    yield
    # Shutdown: close session (pending saves) and gateway
    log.info("shutdown_begin")
    await container.shutdown()
    log.info("shutdown_complete")


# Create app
app = FastAPI(
    title="Code Analysis Dashboard",
    version="0.1.0",
    description="Heuristic code analysis with live dashboard widgets",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS
container = get_container()
app.add_middleware(
    CORSMiddleware,
    allow_origins=container.config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(analysis_router)
app.include_router(dashboard_router)
app.include_router(widgets_router)


@app.get("/health")
@limiter.limit(configured_rate_limit)
async def health(request: Request) -> dict:
    """Health check with session state."""
    container = get_container()
    session = container.dashboard_session
    snapshot = session.store.snapshot()
    return {
        "status": "ok",
        "service": "code-analysis-dashboard",
        "persistence_backend": container.config.persistence.backend,
        "project_id": session.project_id,
        "mounted": session.mounted,
        "result_revision": snapshot.result_revision,
    }
