"""
Shared service instances for the API routes

One orchestrator per process, so concurrent requests for the same document
share a single AI analysis.
"""

from app.db.base import get_session_factory
from app.services.alert_service import DatabaseAlertSink
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.batch_scheduler import BatchScheduler
from app.services.document_source import ScraperServiceSource
from app.services.personalization import PersonalizationEngine
from app.services.risk_service import RiskService

_orchestrator = None
_risk_service = None
_scheduler = None


def get_orchestrator() -> AnalysisOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AnalysisOrchestrator()
    return _orchestrator


def get_risk_service() -> RiskService:
    global _risk_service
    if _risk_service is None:
        session_factory = get_session_factory()
        _risk_service = RiskService(
            get_orchestrator(),
            personalization=PersonalizationEngine(DatabaseAlertSink(session_factory)),
            session_factory=session_factory,
        )
    return _risk_service


def get_scheduler() -> BatchScheduler:
    global _scheduler
    if _scheduler is None:
        _scheduler = BatchScheduler(get_risk_service(), ScraperServiceSource())
    return _scheduler
