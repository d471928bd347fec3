"""
Risk alert endpoints
"""

from typing import List
from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.schemas.site import AlertActionRequest, AlertResponse
from app.services.alert_service import get_unread_alerts, mark_alert_as_read, record_alert_action

router = APIRouter()


@router.get("", response_model=List[AlertResponse])
async def unread_alerts(
    user_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
):
    return await get_unread_alerts(db, user_id)


@router.put("/{alert_id}/read")
async def mark_read(alert_id: str, db: AsyncSession = Depends(get_db)):
    if not await mark_alert_as_read(db, alert_id):
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return {"alert_id": alert_id, "is_read": True}


@router.put("/{alert_id}/action", response_model=AlertResponse)
async def take_action(
    alert_id: str,
    request: AlertActionRequest,
    db: AsyncSession = Depends(get_db)
):
    """Record how the user responded to an alert"""
    try:
        alert = await record_alert_action(db, alert_id, request.action)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if alert is None:
        raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
    return alert
