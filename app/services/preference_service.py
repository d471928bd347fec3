"""
Preference Service
Loads and saves users' privacy preferences.
"""

import logging
from typing import Any, List, Mapping

from sqlalchemy import func, literal, select
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import new_id
from app.db.models.user_preference import UserPreference
from app.schemas.preferences import PreferenceSet, validate_changes

logger = logging.getLogger(__name__)


class PreferenceService:
    """Service for the user_preferences table"""

    async def get_or_create(self, db: AsyncSession, user_id: str) -> PreferenceSet:
        """
        A user's preferences, creating a row with the defaults on first use.

        Raises:
            PreferenceError: If the stored map is malformed
        """
        row = await self._get_row(db, user_id)
        if row is None:
            stmt = pg_insert(UserPreference).values(
                id=new_id(),
                user_id=user_id,
                preferences=PreferenceSet.defaults().to_dict(),
            ).on_conflict_do_nothing(index_elements=["user_id"])
            await db.execute(stmt)
            await db.commit()
            row = await self._get_row(db, user_id)
            logger.info(f"Created default preferences for user {user_id}")

        return PreferenceSet(row.preferences or {}, user_id=user_id)

    async def update(
        self,
        db: AsyncSession,
        user_id: str,
        changes: Mapping[Any, Any]
    ) -> PreferenceSet:
        """
        Apply a partial update. Flags not mentioned keep their value.

        The changes are merged into the stored map by the database in one
        statement, so concurrent updates of different flags both land.

        Raises:
            PreferenceError: On unknown flag names or non-boolean values
        """
        validated = {flag.value: allowed for flag, allowed in validate_changes(changes).items()}

        stmt = pg_insert(UserPreference).values(
            id=new_id(),
            user_id=user_id,
            preferences=PreferenceSet(validated).to_dict(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                "preferences": UserPreference.preferences.op("||", return_type=JSONB)(
                    literal(validated, type_=JSONB)
                ),
                "updated_at": func.now(),
            },
        ).returning(UserPreference.preferences)

        result = await db.execute(stmt)
        stored = result.scalar_one()
        await db.commit()

        logger.info(f"Updated {len(validated)} preferences for user {user_id}")
        return PreferenceSet(stored or {}, user_id=user_id)

    async def restrictive_preferences(self, db: AsyncSession, user_id: str) -> List[str]:
        """Names of the practices a user disallows"""
        preferences = await self.get_or_create(db, user_id)
        return preferences.restrictive()

    async def _get_row(self, db: AsyncSession, user_id: str):
        result = await db.execute(select(UserPreference).where(UserPreference.user_id == user_id))
        return result.scalar_one_or_none()
