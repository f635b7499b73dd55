"""Dashboard API - store snapshot, remount, realtime stream."""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import configured_rate_limit, get_session, limiter
from src.application.dashboard.session import DashboardSession
from src.domain.entities.dashboard import StoreSnapshot

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def snapshot_payload(snapshot: StoreSnapshot) -> dict:
    """JSON shape of a snapshot (records use camelCase fields)."""
    return snapshot.model_dump(mode="json", by_alias=True)


@router.get("")
@limiter.limit(configured_rate_limit)
async def get_dashboard(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Full store snapshot."""
    return snapshot_payload(session.store.snapshot())


@router.post("/mount")
@limiter.limit("30/minute")
async def mount_dashboard(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Remount: reset widget UI state and reload the latest saved analysis."""
    outcome = await session.mount()
    return outcome.model_dump()


@router.get("/notifications")
@limiter.limit(configured_rate_limit)
async def list_notifications(
    request: Request,
    since: int = 0,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Notifications newer than ``since`` (toasts for the UI shell)."""
    items = session.store.notifications(since_id=since)
    return {"notifications": [n.model_dump(mode="json") for n in items]}


@router.get("/events")
@limiter.limit("60/minute")
async def dashboard_events(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> EventSourceResponse:
    """Stream store snapshots via SSE. Slow clients only get the latest one."""
    store = session.store
    queue: asyncio.Queue[StoreSnapshot] = asyncio.Queue(maxsize=1)

    def on_change(snapshot: StoreSnapshot) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(snapshot)

    async def event_generator():
        unsubscribe = store.subscribe(on_change)
        try:
            yield {"event": "snapshot", "data": store.snapshot().model_dump_json(by_alias=True)}
            while True:
                snapshot = await queue.get()
                yield {
                    "event": "snapshot",
                    "id": str(snapshot.version),
                    "data": snapshot.model_dump_json(by_alias=True),
                }
        finally:
            unsubscribe()
            logger.debug("Dashboard event stream closed")

    return EventSourceResponse(event_generator())
