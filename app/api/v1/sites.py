"""
Site endpoints
"""

import logging
from typing import List
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_risk_service, get_scheduler
from app.db.base import get_db
from app.schemas.analysis import AnalysisResult, ContentType
from app.schemas.errors import InsufficientContentError, NotFoundError
from app.schemas.site import (
    ClauseResponse,
    SiteAnalysisRequest,
    SiteCreateRequest,
    SiteResponse,
    SiteRiskAnalysisResponse,
    TosVersionResponse,
)
from app.services.batch_scheduler import BatchReport, BatchScheduler
from app.services.clause_library import ClauseLibraryService
from app.services.risk_service import RiskService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=SiteResponse)
async def register_site(
    request: SiteCreateRequest,
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """Register a site, or return it if the domain is already known"""
    try:
        return await risk_service.sites.get_or_create_by_domain(
            db,
            request.domain,
            name=request.name,
            tos_url=request.tos_url,
            privacy_policy_url=request.privacy_policy_url,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("", response_model=List[SiteResponse])
async def list_sites(
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    return await risk_service.sites.list_sites(db)


@router.get("/{site_id}/risk", response_model=SiteRiskAnalysisResponse)
async def get_site_risk(
    site_id: str,
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """The site's current verdict"""
    analysis = await risk_service.sites.get_site_risk_analysis(db, site_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail=f"No analysis for site {site_id}")
    return analysis


@router.get("/{site_id}/clauses", response_model=List[ClauseResponse])
async def get_site_clauses(site_id: str, db: AsyncSession = Depends(get_db)):
    return await ClauseLibraryService().get_site_clauses(db, site_id)


@router.get("/{site_id}/versions", response_model=List[TosVersionResponse])
async def get_site_versions(
    site_id: str,
    content_type: ContentType = Query(ContentType.TERMS_OF_SERVICE),
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """Document versions seen for a site, newest first"""
    return await risk_service.sites.get_version_history(db, site_id, content_type)


@router.post("/{site_id}/analysis", response_model=AnalysisResult)
async def analyze_site(
    site_id: str,
    request: SiteAnalysisRequest,
    risk_service: RiskService = Depends(get_risk_service),
    scheduler: BatchScheduler = Depends(get_scheduler)
):
    """
    Analyze a site now.

    With content in the body that text is analyzed; otherwise the current
    document is fetched from the scraper service.
    """
    try:
        if request.content:
            return await risk_service.analyze_site_content(
                site_id, request.content, request.content_type
            )
        return await scheduler.analyze_site_now(site_id)

    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientContentError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing site {site_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error analyzing site: {str(e)}")


@router.post("/batch/run", response_model=BatchReport)
async def run_batch(scheduler: BatchScheduler = Depends(get_scheduler)):
    """Run one batch pass now, outside the periodic schedule"""
    try:
        return await scheduler.run_once()
    except Exception as e:
        logger.error(f"Error running batch analysis: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error running batch analysis: {str(e)}")
