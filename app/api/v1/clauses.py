"""
Clause library endpoints
"""

from typing import List
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.schemas.site import ClauseResponse
from app.services.clause_library import SIMILARITY_THRESHOLD, ClauseLibraryService

router = APIRouter()


@router.get("/search", response_model=List[ClauseResponse])
async def search_clauses(
    q: str = Query(..., min_length=2, description="Search term"),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    """Clauses matching a term, most widespread first"""
    return await ClauseLibraryService().search_clauses(db, q, limit=limit)


@router.get("/risk-level/{risk_level}", response_model=List[ClauseResponse])
async def clauses_by_risk_level(risk_level: str, db: AsyncSession = Depends(get_db)):
    try:
        return await ClauseLibraryService().get_clauses_by_risk_level(db, risk_level)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/similar", response_model=List[ClauseResponse])
async def similar_clauses(
    text: str = Query(..., min_length=2),
    threshold: float = Query(SIMILARITY_THRESHOLD, ge=0.0, le=1.0),
    db: AsyncSession = Depends(get_db)
):
    """Known clauses worded like the given text"""
    return await ClauseLibraryService().find_similar_clauses(db, text, threshold=threshold)
