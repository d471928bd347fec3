"""
Analysis cache maintenance endpoints
"""

import logging
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_orchestrator
from app.db.base import get_db
from app.services.analysis_orchestrator import AnalysisOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/statistics")
async def cache_statistics(
    db: AsyncSession = Depends(get_db),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    return await orchestrator.cache.statistics(db)


@router.post("/evict")
async def evict_cache(
    retention_days: Optional[int] = Query(None, ge=1),
    min_access_count: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """Delete analyses that are both old and rarely used"""
    try:
        deleted = await orchestrator.cache.evict(
            db, retention_days=retention_days, min_access_count=min_access_count
        )
        return {"deleted": deleted}
    except Exception as e:
        logger.error(f"Error evicting cache entries: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error evicting cache entries: {str(e)}")


@router.post("/stale/{site_id}")
async def mark_site_stale(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator)
):
    """Flag a site's cached analyses for re-analysis"""
    marked = await orchestrator.cache.mark_stale(db, site_id)
    return {"site_id": site_id, "marked_stale": marked}
