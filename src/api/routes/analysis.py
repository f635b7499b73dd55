"""Analysis API - submit source text, read the current result."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import configured_rate_limit, get_config, get_session, limiter
from src.application.dashboard.dto import AnalysisRequest
from src.application.dashboard.session import DashboardSession
from src.domain.ports.config import AppConfig

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post("")
@limiter.limit("30/minute")
async def submit_analysis(
    request: Request,
    body: AnalysisRequest,
    session: DashboardSession = Depends(get_session),
    config: AppConfig = Depends(get_config),
) -> dict:
    """Analyze text and make the result current. Saving happens in the background."""
    if not body.text.strip():
        raise HTTPException(status_code=400, detail="Please enter some code to analyze")
    if len(body.text) > config.analysis.max_text_length:
        raise HTTPException(
            status_code=413,
            detail=f"Text exceeds {config.analysis.max_text_length} characters",
        )
    outcome = await session.submit(body.text, body.options)
    return {
        "revision": outcome.revision,
        "applied": outcome.applied,
        "result": outcome.result.model_dump(mode="json", by_alias=True),
    }


@router.get("/current")
@limiter.limit(configured_rate_limit)
async def current_analysis(
    request: Request,
    session: DashboardSession = Depends(get_session),
) -> dict:
    """Current result record, or null when nothing has been analyzed."""
    snapshot = session.store.snapshot()
    return {
        "revision": snapshot.result_revision,
        "result": snapshot.result.model_dump(mode="json", by_alias=True) if snapshot.result else None,
    }
