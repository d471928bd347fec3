"""Pytest fixtures for Privacy Lens tests."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from app.db.base import utcnow
from app.main import app
from app.schemas.analysis import RISK_CATEGORIES


class FakeSession:
    """Stand-in AsyncSession usable as `async with session_factory() as db`."""

    def __init__(self):
        self.add = MagicMock()
        self.commit = AsyncMock()
        self.rollback = AsyncMock()
        self.refresh = AsyncMock()
        self.execute = AsyncMock()
        self.get = AsyncMock(return_value=None)
        self.open = 0

    async def __aenter__(self):
        self.open += 1
        return self

    async def __aexit__(self, *exc):
        self.open -= 1
        return False


class FakeSessionFactory:
    """Hands out one shared FakeSession and counts how often it was opened."""

    def __init__(self, session=None):
        self.session = session or FakeSession()
        self.opened = 0

    def __call__(self):
        self.opened += 1
        return self.session


def ai_payload(score: int = 72, clauses=None) -> dict:
    """A response that satisfies the AI analyzer contract."""
    breakdown = {category: 0 for category in RISK_CATEGORIES}
    breakdown["data_sharing"] = score
    return {
        "overall_risk_score": score,
        "confidence_score": 0.9,
        "detected_clauses": clauses if clauses is not None else [
            {
                "clause_text": "We may sell your personal data to our partners.",
                "section": "4. Sharing",
                "position": 12,
                "risk_level": "high",
                "risk_category": "data_sharing",
                "explanation": "Data may be sold",
                "user_impact": "Loss of control over personal data",
                "mitigation_advice": "Opt out of data sales",
            }
        ],
        "risk_breakdown": breakdown,
        "recommendation_summary": "Review data sharing settings",
    }


def cache_row(**overrides) -> SimpleNamespace:
    """A tos_analysis_cache row with every column AnalysisResult.from_cache reads."""
    row = dict(
        id="cache-1",
        site_id=None,
        content_hash="a" * 64,
        content_type="terms_of_service",
        overall_risk_score=72,
        risk_analysis={category: 0 for category in RISK_CATEGORIES},
        detected_clauses=[],
        risk_explanations={},
        recommendation_summary="Review data sharing settings",
        ai_model_used="gpt-4o-mini",
        analysis_version="1.0.0",
        tokens_used=900,
        analysis_duration_ms=1200,
        confidence_score=0.9,
        analyzed_at=utcnow(),
        access_count=1,
        is_stale=False,
    )
    row.update(overrides)
    return SimpleNamespace(**row)


@pytest.fixture
def session_factory() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client."""
    yield TestClient(app)
    app.dependency_overrides.clear()
