"""Tests for alert delivery and alert bookkeeping."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeSessionFactory
from app.schemas.personalization import Alert, AlertType
from app.services.alert_service import (
    DatabaseAlertSink,
    LoggingAlertSink,
    mark_alert_as_read,
    record_alert_action,
)

ALERT = Alert(
    user_id="user-1",
    site_id="site-1",
    alert_type=AlertType.PREFERENCE_VIOLATION,
    risk_score=65,
    violated_preferences=["allow_data_selling"],
    message="Site with preference violations",
)


@pytest.mark.asyncio
async def test_database_sink_persists_in_its_own_session():
    sessions = FakeSessionFactory()

    await DatabaseAlertSink(sessions).emit(ALERT)

    assert sessions.opened == 1
    row = sessions.session.add.call_args.args[0]
    assert row.alert_type == "preference_violation"
    assert row.violated_preferences == ["allow_data_selling"]
    assert row.is_read is False
    sessions.session.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_logging_sink_does_not_raise():
    await LoggingAlertSink().emit(ALERT)


@pytest.mark.asyncio
async def test_mark_alert_as_read_reports_missing_alert():
    db = AsyncMock()
    db.execute = AsyncMock(return_value=MagicMock(rowcount=0))
    assert await mark_alert_as_read(db, "missing") is False


@pytest.mark.asyncio
async def test_record_alert_action():
    alert = SimpleNamespace(action_taken=None, is_read=False)
    db = AsyncMock()
    db.get = AsyncMock(return_value=alert)

    updated = await record_alert_action(db, "alert-1", "blocked")

    assert updated.action_taken == "blocked"
    assert updated.is_read is True
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_record_alert_action_rejects_unknown_action():
    with pytest.raises(ValueError):
        await record_alert_action(AsyncMock(), "alert-1", "deleted")
