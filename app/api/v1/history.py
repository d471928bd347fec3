"""
Personalized analysis history endpoints
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_risk_service
from app.db.base import get_db
from app.schemas.errors import DecisionAlreadyRecordedError, NotFoundError
from app.schemas.personalization import DecisionRequest, HistoryEntry
from app.services.risk_service import RiskService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=List[HistoryEntry])
async def get_history(
    user_id: str = Query(..., min_length=1),
    site_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """A user's personalized verdicts, newest first"""
    return await risk_service.personalization.get_history(db, user_id, site_id)


@router.put("/{history_id}/decision", response_model=HistoryEntry)
async def record_decision(
    history_id: str,
    request: DecisionRequest,
    db: AsyncSession = Depends(get_db),
    risk_service: RiskService = Depends(get_risk_service)
):
    """Record whether the user proceeded, left or blocked the site"""
    try:
        return await risk_service.personalization.record_decision(db, history_id, request.decision)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DecisionAlreadyRecordedError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error recording decision for {history_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error recording decision: {str(e)}")
