"""
User preference endpoints
"""

import logging
from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.schemas.errors import PreferenceError
from app.schemas.preferences import PreferencesResponse, PreferencesUpdateRequest
from app.services.preference_service import PreferenceService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/{user_id}", response_model=PreferencesResponse)
async def get_preferences(user_id: str, db: AsyncSession = Depends(get_db)):
    """A user's preferences; defaults are created on first access"""
    try:
        preferences = await PreferenceService().get_or_create(db, user_id)
        return PreferencesResponse(user_id=user_id, preferences=preferences.to_dict())
    except PreferenceError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception as e:
        logger.error(f"Error loading preferences for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error loading preferences: {str(e)}")


@router.put("/{user_id}", response_model=PreferencesResponse)
async def update_preferences(
    user_id: str,
    request: PreferencesUpdateRequest,
    db: AsyncSession = Depends(get_db)
):
    """Change some of a user's preferences"""
    try:
        preferences = await PreferenceService().update(db, user_id, request.preferences)
        return PreferencesResponse(user_id=user_id, preferences=preferences.to_dict())
    except PreferenceError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception as e:
        logger.error(f"Error updating preferences for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error updating preferences: {str(e)}")


@router.get("/{user_id}/restrictive")
async def get_restrictive_preferences(user_id: str, db: AsyncSession = Depends(get_db)):
    """Practices the user disallows"""
    try:
        restrictive = await PreferenceService().restrictive_preferences(db, user_id)
        return {"user_id": user_id, "restrictive_preferences": restrictive}
    except PreferenceError as e:
        raise HTTPException(status_code=422, detail=e.message)
    except Exception as e:
        logger.error(f"Error loading restrictive preferences for {user_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=f"Error loading preferences: {str(e)}")
