"""
Alert delivery for personalized verdicts.
"""

import logging
from typing import Callable, List, Optional, Protocol

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.risk_alert import RiskAlert
from app.schemas.personalization import Alert

logger = logging.getLogger(__name__)

ALERT_ACTIONS = ("ignored", "blocked", "proceeded_anyway")


class AlertSink(Protocol):
    async def emit(self, alert: Alert) -> None:
        ...


class LoggingAlertSink:
    """Writes alerts to the log only"""

    async def emit(self, alert: Alert) -> None:
        logger.info(
            f"Alert {alert.alert_type.value} for user {alert.user_id} "
            f"on site {alert.site_id}: {alert.message}"
        )


class DatabaseAlertSink:
    """
    Persists alerts as risk_alerts rows.

    Uses its own session so a failed alert never rolls back the caller's work.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]):
        self.session_factory = session_factory

    async def emit(self, alert: Alert) -> None:
        async with self.session_factory() as db:
            db.add(RiskAlert(
                user_id=alert.user_id,
                site_id=alert.site_id,
                alert_type=alert.alert_type.value,
                risk_score=alert.risk_score,
                violated_preferences=list(alert.violated_preferences),
                message=alert.message,
                is_read=False,
            ))
            await db.commit()
        logger.info(f"Created {alert.alert_type.value} alert for user {alert.user_id}")


async def get_unread_alerts(db: AsyncSession, user_id: str) -> List[RiskAlert]:
    stmt = (
        select(RiskAlert)
        .where(RiskAlert.user_id == user_id, RiskAlert.is_read.is_(False))
        .order_by(RiskAlert.created_at.desc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def mark_alert_as_read(db: AsyncSession, alert_id: str) -> bool:
    result = await db.execute(
        update(RiskAlert).where(RiskAlert.id == alert_id).values(is_read=True)
    )
    await db.commit()
    return bool(result.rowcount)


async def record_alert_action(db: AsyncSession, alert_id: str, action: str) -> Optional[RiskAlert]:
    """Store what the user did about an alert"""
    if action not in ALERT_ACTIONS:
        raise ValueError(f"Invalid alert action: {action}. Must be one of {ALERT_ACTIONS}")
    alert = await db.get(RiskAlert, alert_id)
    if alert is None:
        return None
    alert.action_taken = action
    alert.is_read = True
    await db.commit()
    return alert
