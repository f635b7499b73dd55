"""Widgets API - rendered widget views, settings, code tree interaction."""

from typing import cast

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import configured_rate_limit, get_session, limiter
from src.application.dashboard.dto import SettingUpdate
from src.application.dashboard.session import DashboardSession
from src.application.widgets import CodeTreeWidget
from src.domain.entities.widgets import WidgetKind
from src.domain.errors import UnknownNodeError, UnknownSettingError, UnknownWidgetError

router = APIRouter(prefix="/widgets", tags=["widgets"])


def _code_tree(session: DashboardSession) -> CodeTreeWidget:
    return cast(CodeTreeWidget, session.widget(WidgetKind.CODE_TREE))


@router.get("")
@limiter.limit(configured_rate_limit)
async def list_widgets(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """All four widgets rendered from one snapshot."""
    snapshot = session.store.snapshot()
    return {
        "version": snapshot.version,
        "widgets": [
            session.widget(kind).render(snapshot).model_dump(mode="json")
            for kind in WidgetKind
        ],
    }


@router.get("/{kind}")
@limiter.limit(configured_rate_limit)
async def get_widget(
    request: Request,
    kind: str,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """One rendered widget."""
    try:
        widget = session.widget(kind)
    except UnknownWidgetError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return widget.render().model_dump(mode="json")


@router.patch("/{kind}/settings")
@limiter.limit("60/minute")
async def update_widget_setting(
    request: Request,
    kind: str,
    body: SettingUpdate,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Change one setting of one widget."""
    try:
        widget = session.widget(kind)
    except UnknownWidgetError as e:
        raise HTTPException(status_code=404, detail=str(e))
    try:
        settings = widget.update_setting(body.key, body.value)
    except UnknownSettingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"kind": widget.kind.value, "settings": settings}


@router.post("/code_tree/nodes/{node_id}/toggle")
@limiter.limit("120/minute")
async def toggle_tree_node(
    request: Request,
    node_id: str,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Expand or collapse a folder (local to the current mount)."""
    try:
        expanded = _code_tree(session).toggle(node_id)
    except UnknownNodeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"id": node_id, "expanded": expanded}


@router.post("/code_tree/nodes/{node_id}/select")
@limiter.limit("120/minute")
async def select_tree_node(
    request: Request,
    node_id: str,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Select a node (single selection, last one wins)."""
    try:
        node = _code_tree(session).select(node_id)
    except UnknownNodeError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"selected": {"id": node.id, "name": node.name, "kind": node.kind.value}}


@router.delete("/code_tree/selection")
@limiter.limit("120/minute")
async def clear_tree_selection(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> dict:
    _code_tree(session).clear_selection()
    return {"selected": None}
