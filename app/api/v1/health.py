"""
Health check endpoint
"""

from fastapi import APIRouter
from app.api.v1.deps import get_orchestrator, get_scheduler
from app.core.config import settings

router = APIRouter()


@router.get("")
async def health():
    """
    Health check endpoint.
    """
    orchestrator = get_orchestrator()
    scheduler = get_scheduler()
    last_report = scheduler.last_report

    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "analysis_version": settings.ANALYSIS_VERSION,
        "openai_configured": bool(settings.OPENAI_API_KEY),
        "scraper_configured": scheduler.document_source.is_configured(),
        "quality_gate_enforced": orchestrator.enforce_quality_gate,
        "scheduler_started": scheduler.is_started,
        "scheduler_state": scheduler.state.value,
        "last_batch_run": last_report.finished_at if last_report else None
    }
