"""
Personalization Engine
Turns a base analysis plus a user's preferences into a personal verdict.

personalize() is a pure function of its inputs. PersonalizationEngine adds
the side effects around it: writing history and raising alerts.
"""

import logging
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import utcnow
from app.db.models.analysis_history import UserAnalysisHistory
from app.schemas.analysis import AnalysisResult, AnalysisSource
from app.schemas.errors import DecisionAlreadyRecordedError, NotFoundError
from app.schemas.personalization import (
    Alert,
    AlertType,
    PersonalizedAnalysis,
    PreferenceWarning,
    Recommendation,
    UserDecision,
)
from app.schemas.preferences import PreferenceSet
from app.services.alert_service import AlertSink
from app.services.preference_rules import evaluate_clause, severity_for, warning_for

logger = logging.getLogger(__name__)

VIOLATION_PENALTY = 5
AVOID_SCORE = 80
AVOID_VIOLATIONS = 5
CAUTION_SCORE = 60
CAUTION_VIOLATIONS = 3


def check_preference_violations(analysis: AnalysisResult, preferences: PreferenceSet) -> List[str]:
    """Violated preference names, deduplicated in first-seen order"""
    violations: List[str] = []
    for clause in analysis.detected_clauses:
        for preference in evaluate_clause(clause, preferences):
            if preference not in violations:
                violations.append(preference)
    return violations


def personalized_risk_score(base_score: int, violations: List[str]) -> int:
    return min(100, base_score + VIOLATION_PENALTY * len(violations))


def recommend(score: int, violations: List[str]) -> Recommendation:
    if score >= AVOID_SCORE or len(violations) >= AVOID_VIOLATIONS:
        return Recommendation.AVOID
    if score >= CAUTION_SCORE or len(violations) >= CAUTION_VIOLATIONS:
        return Recommendation.CAUTION
    return Recommendation.PROCEED


def build_warnings(violations: List[str]) -> List[PreferenceWarning]:
    return [
        PreferenceWarning(
            preference=preference,
            warning=warning_for(preference),
            severity=severity_for(preference),
        )
        for preference in violations
    ]


def personalize(analysis: AnalysisResult, preferences: PreferenceSet) -> PersonalizedAnalysis:
    """
    Personal verdict for one user.

    Same analysis and same preferences always give the same verdict.
    """
    if not isinstance(preferences, PreferenceSet):
        preferences = PreferenceSet(preferences)

    violations = check_preference_violations(analysis, preferences)
    score = personalized_risk_score(analysis.overall_risk_score, violations)
    return PersonalizedAnalysis(
        base_analysis=analysis,
        personalized_risk_score=score,
        violated_preferences=violations,
        personalized_warnings=build_warnings(violations),
        user_recommendation=recommend(score, violations),
    )


def alert_for(user_id: str, site_id: Optional[str], result: PersonalizedAnalysis) -> Optional[Alert]:
    """Alert to raise for a verdict, if any"""
    if result.user_recommendation == Recommendation.AVOID:
        return Alert(
            user_id=user_id,
            site_id=site_id,
            alert_type=AlertType.HIGH_RISK_VISIT,
            risk_score=result.personalized_risk_score,
            message="High-risk site",
        )
    if result.user_recommendation == Recommendation.CAUTION and result.violated_preferences:
        return Alert(
            user_id=user_id,
            site_id=site_id,
            alert_type=AlertType.PREFERENCE_VIOLATION,
            risk_score=result.personalized_risk_score,
            violated_preferences=result.violated_preferences,
            message="Site with preference violations",
        )
    return None


class PersonalizationEngine:
    """Personalizes analyses and keeps the per-user history"""

    def __init__(self, alert_sink: Optional[AlertSink] = None):
        self.alert_sink = alert_sink

    async def personalize_and_record(
        self,
        db: AsyncSession,
        user_id: str,
        site_id: str,
        analysis: AnalysisResult,
        preferences: PreferenceSet
    ) -> PersonalizedAnalysis:
        """
        Personalize, store the verdict in the user's history and raise an
        alert when warranted. Alert delivery failures are logged, never raised.
        """
        result = personalize(analysis, preferences)

        # Fallback analyses are not cached, so there is no row to point at.
        cache_id = analysis.cache_id if analysis.source != AnalysisSource.FALLBACK else None
        history = UserAnalysisHistory(
            user_id=user_id,
            site_id=site_id,
            tos_analysis_cache_id=cache_id,
            personalized_risk_score=result.personalized_risk_score,
            violated_preferences=result.violated_preferences,
            personalized_warnings=[w.model_dump(mode="json") for w in result.personalized_warnings],
            user_recommendation=result.user_recommendation.value,
            analysis_requested_at=utcnow(),
        )
        db.add(history)
        await db.commit()
        await db.refresh(history)
        result.history_id = history.id

        logger.info(
            f"Personalized analysis for user {user_id} on site {site_id}: "
            f"{result.personalized_risk_score} ({result.user_recommendation.value}), "
            f"{len(result.violated_preferences)} violations"
        )

        alert = alert_for(user_id, site_id, result)
        if alert is not None and self.alert_sink is not None:
            try:
                await self.alert_sink.emit(alert)
            except Exception as e:
                logger.error(f"Failed to emit {alert.alert_type.value} alert for user {user_id}: {e}", exc_info=True)

        return result

    async def record_decision(
        self,
        db: AsyncSession,
        history_id: str,
        decision: UserDecision
    ) -> UserAnalysisHistory:
        """
        Record what the user did after seeing a verdict. A history entry
        takes one decision; later calls are rejected.

        Raises:
            NotFoundError: If the history entry does not exist
            DecisionAlreadyRecordedError: If a decision was already recorded
        """
        decision = UserDecision(decision)
        stmt = (
            update(UserAnalysisHistory)
            .where(
                UserAnalysisHistory.id == history_id,
                UserAnalysisHistory.user_decision.is_(None),
            )
            .values(user_decision=decision.value, decision_made_at=utcnow())
            .returning(UserAnalysisHistory)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        history = result.scalar_one_or_none()
        if history is None:
            await db.rollback()
            existing = await db.get(UserAnalysisHistory, history_id)
            if existing is None:
                raise NotFoundError(f"Analysis history {history_id} not found")
            raise DecisionAlreadyRecordedError(
                f"Decision '{existing.user_decision}' already recorded for history {history_id}"
            )

        await db.commit()
        logger.info(f"Recorded decision '{decision.value}' for history {history_id}")
        return history

    async def get_history(
        self,
        db: AsyncSession,
        user_id: str,
        site_id: Optional[str] = None
    ) -> List[UserAnalysisHistory]:
        """A user's verdicts, newest first"""
        stmt = select(UserAnalysisHistory).where(UserAnalysisHistory.user_id == user_id)
        if site_id:
            stmt = stmt.where(UserAnalysisHistory.site_id == site_id)
        stmt = stmt.order_by(UserAnalysisHistory.analysis_requested_at.desc())
        result = await db.execute(stmt)
        return list(result.scalars().all())
