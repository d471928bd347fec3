"""Tests for the preference service, checked against the SQL it emits."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from app.schemas.errors import PreferenceError
from app.services.preference_service import PreferenceService


def _mock_db(scalar_one=None, rows=()):
    db = AsyncMock()
    db.commit = AsyncMock()
    results = []
    for row in rows:
        result = MagicMock()
        result.scalar_one_or_none.return_value = row
        results.append(result)
    upsert_result = MagicMock()
    upsert_result.scalar_one.return_value = scalar_one
    results.append(upsert_result)
    db.execute = AsyncMock(side_effect=results)
    return db


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


@pytest.mark.asyncio
async def test_update_merges_changes_in_one_statement():
    stored = {"allow_data_selling": True, "allow_robocalls": True}
    db = _mock_db(scalar_one=stored)

    prefs = await PreferenceService().update(db, "user-1", {"allow_data_selling": True})

    assert db.execute.await_count == 1
    stmt = db.execute.call_args.args[0]
    sql = _sql(stmt)
    assert sql.startswith("INSERT INTO user_preferences")
    assert "ON CONFLICT (user_id) DO UPDATE SET preferences =" in sql
    assert "user_preferences.preferences ||" in sql
    assert "RETURNING user_preferences.preferences" in sql
    assert {"allow_data_selling": True} in stmt.compile(dialect=postgresql.dialect()).params.values()

    assert prefs.user_id == "user-1"
    assert prefs["allow_data_selling"] is True
    assert prefs["allow_robocalls"] is True
    assert prefs["allow_camera_access"] is False
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_update_rejects_bad_changes_before_writing():
    db = _mock_db()

    with pytest.raises(PreferenceError):
        await PreferenceService().update(db, "user-1", {"allow_everything": True})
    with pytest.raises(PreferenceError):
        await PreferenceService().update(db, "user-1", {"allow_data_selling": "yes"})

    db.execute.assert_not_awaited()


@pytest.mark.asyncio
async def test_restrictive_preferences_of_existing_user():
    row = SimpleNamespace(preferences={"allow_data_selling": True})
    db = AsyncMock()
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    db.execute = AsyncMock(return_value=result)

    restrictive = await PreferenceService().restrictive_preferences(db, "user-1")

    assert "allow_data_selling" not in restrictive
    assert "allow_camera_access" in restrictive
    assert "allow_usage_analytics" not in restrictive
