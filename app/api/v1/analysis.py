"""
Document analysis endpoints
"""

import logging
from fastapi import APIRouter, HTTPException, Depends, Body, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_orchestrator, get_risk_service
from app.db.base import get_db
from app.schemas.analysis import AnalysisResult, AnalyzeForUserRequest, AnalyzeRequest, QualityReport
from app.schemas.errors import InsufficientContentError, NotFoundError, PreferenceError
from app.schemas.personalization import PersonalizedAnalysis
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.quality_gate import QualityGate
from app.services.risk_service import RiskService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=AnalysisResult)
async def analyze_document(
    request: AnalyzeRequest,
    refresh_stale: bool = Query(False, description="Re-analyze if the cached analysis is stale"),
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
    risk_service: RiskService = Depends(get_risk_service)
):
    """
    Analyze a ToS or privacy policy.

    Identical documents are served from the cache. With a site_id the
    result also becomes that site's current verdict.
    """
    try:
        if request.site_id:
            return await risk_service.analyze_site_content(
                request.site_id, request.content, request.content_type, refresh_stale=refresh_stale
            )
        return await orchestrator.analyze(
            request.content, request.content_type, refresh_stale=refresh_stale
        )

    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientContentError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error analyzing document: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error analyzing document: {str(e)}")


@router.post("/personalized", response_model=PersonalizedAnalysis)
async def analyze_for_user(
    request: AnalyzeForUserRequest,
    risk_service: RiskService = Depends(get_risk_service)
):
    """Analyze a document and personalize the verdict for one user"""
    try:
        return await risk_service.analyze_for_user(
            request.user_id, request.site_id, request.content, request.content_type
        )

    except HTTPException:
        raise
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (InsufficientContentError, PreferenceError) as e:
        raise HTTPException(status_code=422, detail=e.message)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Error in personalized analysis: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error in personalized analysis: {str(e)}")


@router.post("/quality", response_model=QualityReport)
async def check_quality(content: str = Body(..., embed=True, min_length=1)):
    """Score whether a document is worth sending to the AI analyzer"""
    return QualityGate().analyze(content)


@router.get("/summary")
async def analysis_summary(
    days: int = Query(7, ge=1, le=90),
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """Cache statistics, daily analysis counts and site risk distribution"""
    try:
        return await risk_service.analysis_summary(db, trend_days=days)
    except Exception as e:
        logger.error(f"Error building analysis summary: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error building analysis summary: {str(e)}")
