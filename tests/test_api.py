"""API tests for Privacy Lens."""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from conftest import FakeSession
from app.api.v1.deps import get_orchestrator, get_risk_service, get_scheduler
from app.db.base import get_db, utcnow
from app.main import app
from app.schemas.analysis import AnalysisResult, AnalysisSource, ContentType
from app.schemas.errors import (
    DecisionAlreadyRecordedError,
    InsufficientContentError,
    NotFoundError,
    PreferenceError,
)
from app.schemas.preferences import PreferenceSet
from app.services.personalization import personalize

API = "/api/v1"


def result(source=AnalysisSource.FRESH):
    return AnalysisResult(
        source=source,
        content_hash="a" * 64,
        content_type=ContentType.TERMS_OF_SERVICE,
        overall_risk_score=72,
        risk_level="high",
        risk_color="#ef4444",
        confidence_score=0.9,
        ai_model_version="gpt-4o-mini",
        analyzed_at=utcnow(),
    )


def override(orchestrator=None, risk_service=None, scheduler=None):
    async def fake_db():
        yield FakeSession()

    app.dependency_overrides[get_db] = fake_db
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator or MagicMock()
    app.dependency_overrides[get_risk_service] = lambda: risk_service or MagicMock()
    app.dependency_overrides[get_scheduler] = lambda: scheduler or MagicMock()


def test_health(client: TestClient, monkeypatch):
    scheduler = MagicMock()
    scheduler.last_report = None
    scheduler.state.value = "idle"
    scheduler.is_started = False
    scheduler.document_source.is_configured.return_value = False
    orchestrator = MagicMock()
    orchestrator.enforce_quality_gate = False
    monkeypatch.setattr("app.api.v1.health.get_scheduler", lambda: scheduler)
    monkeypatch.setattr("app.api.v1.health.get_orchestrator", lambda: orchestrator)

    r = client.get(f"{API}/health")

    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "healthy"
    assert data["scheduler_state"] == "idle"
    assert data["scheduler_started"] is False
    assert data["scraper_configured"] is False
    assert data["last_batch_run"] is None


def test_analyze_document(client: TestClient):
    orchestrator = MagicMock()
    orchestrator.analyze = AsyncMock(return_value=result())
    override(orchestrator=orchestrator)

    r = client.post(f"{API}/analysis", json={"content": "We sell your data.", "content_type": "terms_of_service"})

    assert r.status_code == 200
    data = r.json()
    assert data["source"] == "fresh"
    assert data["risk_level"] == "high"
    orchestrator.analyze.assert_awaited_once_with(
        "We sell your data.", ContentType.TERMS_OF_SERVICE, refresh_stale=False
    )


def test_analyze_document_for_site_goes_through_risk_service(client: TestClient):
    risk_service = MagicMock()
    risk_service.analyze_site_content = AsyncMock(return_value=result(AnalysisSource.CACHED))
    override(risk_service=risk_service)

    r = client.post(f"{API}/analysis", json={"content": "text", "site_id": "site-1"})

    assert r.status_code == 200
    assert r.json()["source"] == "cached"
    risk_service.analyze_site_content.assert_awaited_once()


def test_analyze_rejects_empty_content(client: TestClient):
    override()
    r = client.post(f"{API}/analysis", json={"content": ""})
    assert r.status_code == 422


def test_analyze_rejects_unknown_content_type(client: TestClient):
    override()
    r = client.post(f"{API}/analysis", json={"content": "text", "content_type": "cookie_banner"})
    assert r.status_code == 422


def test_quality_gate_veto_is_422(client: TestClient):
    orchestrator = MagicMock()
    orchestrator.analyze = AsyncMock(side_effect=InsufficientContentError("Content quality too low"))
    override(orchestrator=orchestrator)

    r = client.post(f"{API}/analysis", json={"content": "hi"})

    assert r.status_code == 422
    assert "quality" in r.json()["detail"]


def test_unknown_site_is_404(client: TestClient):
    risk_service = MagicMock()
    risk_service.analyze_site_content = AsyncMock(side_effect=NotFoundError("Site nope not found"))
    override(risk_service=risk_service)

    r = client.post(f"{API}/analysis", json={"content": "text", "site_id": "nope"})

    assert r.status_code == 404


def test_unexpected_error_is_500(client: TestClient):
    orchestrator = MagicMock()
    orchestrator.analyze = AsyncMock(side_effect=RuntimeError("db down"))
    override(orchestrator=orchestrator)

    r = client.post(f"{API}/analysis", json={"content": "text"})

    assert r.status_code == 500


def test_personalized_analysis(client: TestClient):
    verdict = personalize(result(), PreferenceSet.defaults())
    risk_service = MagicMock()
    risk_service.analyze_for_user = AsyncMock(return_value=verdict)
    override(risk_service=risk_service)

    r = client.post(f"{API}/analysis/personalized", json={
        "content": "text", "user_id": "user-1", "site_id": "site-1",
    })

    assert r.status_code == 200
    data = r.json()
    assert data["personalized_risk_score"] == 72
    assert data["user_recommendation"] == "caution"
    assert data["base_analysis"]["source"] == "fresh"


def test_personalized_analysis_with_bad_preferences_is_422(client: TestClient):
    risk_service = MagicMock()
    risk_service.analyze_for_user = AsyncMock(side_effect=PreferenceError("Unknown preference: 'x'"))
    override(risk_service=risk_service)

    r = client.post(f"{API}/analysis/personalized", json={
        "content": "text", "user_id": "user-1", "site_id": "site-1",
    })

    assert r.status_code == 422


def test_quality_endpoint(client: TestClient):
    r = client.post(f"{API}/analysis/quality", json={"content": "Welcome to our site."})
    assert r.status_code == 200
    data = r.json()
    assert data["is_analyzable"] is False
    assert data["metrics"]["word_count"] == 4


def test_preferences_round_trip(client: TestClient, monkeypatch):
    class FakePreferenceService:
        async def get_or_create(self, db, user_id):
            return PreferenceSet.defaults(user_id=user_id)

        async def update(self, db, user_id, changes):
            return PreferenceSet.defaults(user_id=user_id).updated(changes)

    monkeypatch.setattr("app.api.v1.preferences.PreferenceService", FakePreferenceService)
    override()

    r = client.get(f"{API}/preferences/user-1")
    assert r.status_code == 200
    assert r.json()["preferences"]["allow_data_selling"] is False
    assert "data_sharing" in r.json()["categories"]

    r = client.put(f"{API}/preferences/user-1", json={"preferences": {"allow_data_selling": True}})
    assert r.status_code == 200
    assert r.json()["preferences"]["allow_data_selling"] is True

    r = client.put(f"{API}/preferences/user-1", json={"preferences": {"allow_everything": True}})
    assert r.status_code == 422


def test_record_decision_for_missing_history_is_404(client: TestClient):
    risk_service = MagicMock()
    risk_service.personalization.record_decision = AsyncMock(side_effect=NotFoundError("missing"))
    override(risk_service=risk_service)

    r = client.put(f"{API}/history/missing/decision", json={"decision": "avoided"})

    assert r.status_code == 404


def test_invalid_decision_is_422(client: TestClient):
    override()
    r = client.put(f"{API}/history/h1/decision", json={"decision": "maybe"})
    assert r.status_code == 422


def test_site_analysis_without_content_uses_scraper(client: TestClient):
    scheduler = MagicMock()
    scheduler.analyze_site_now = AsyncMock(return_value=result())
    override(scheduler=scheduler)

    r = client.post(f"{API}/sites/site-1/analysis", json={})

    assert r.status_code == 200
    scheduler.analyze_site_now.assert_awaited_once_with("site-1")


def test_site_risk_missing_is_404(client: TestClient):
    risk_service = MagicMock()
    risk_service.sites.get_site_risk_analysis = AsyncMock(return_value=None)
    override(risk_service=risk_service)

    r = client.get(f"{API}/sites/site-1/risk")

    assert r.status_code == 404


def test_batch_run(client: TestClient):
    scheduler = MagicMock()
    scheduler.run_once = AsyncMock(return_value={
        "started_at": utcnow().isoformat(), "total": 0, "succeeded": [], "failed": {}, "cancelled": False,
    })
    override(scheduler=scheduler)

    r = client.post(f"{API}/sites/batch/run")

    assert r.status_code == 200
    assert r.json()["total"] == 0


def test_cache_statistics(client: TestClient):
    orchestrator = MagicMock()
    orchestrator.cache.statistics = AsyncMock(return_value={"total_cached_analyses": 3})
    override(orchestrator=orchestrator)

    r = client.get(f"{API}/cache/statistics")

    assert r.status_code == 200
    assert r.json() == {"total_cached_analyses": 3}


def test_clauses_by_unknown_risk_level_is_400(client: TestClient):
    override()
    r = client.get(f"{API}/clauses/risk-level/catastrophic")
    assert r.status_code == 400


def test_alert_action_must_be_known(client: TestClient):
    override()
    r = client.put(f"{API}/alerts/a1/action", json={"action": "deleted"})
    assert r.status_code == 422


def test_mark_missing_alert_read_is_404(client: TestClient, monkeypatch):
    monkeypatch.setattr("app.api.v1.alerts.mark_alert_as_read", AsyncMock(return_value=False))
    override()

    r = client.put(f"{API}/alerts/a1/read")

    assert r.status_code == 404


def test_register_site(client: TestClient):
    site = SimpleNamespace(
        id="site-1", domain="example.com", name="example.com", tos_url=None,
        privacy_policy_url=None, last_crawled_at=None, is_active=True,
    )
    risk_service = MagicMock()
    risk_service.sites.get_or_create_by_domain = AsyncMock(return_value=site)
    override(risk_service=risk_service)

    r = client.post(f"{API}/sites", json={"domain": "Example.com"})

    assert r.status_code == 200
    assert r.json()["domain"] == "example.com"


def test_root_points_at_docs(client: TestClient):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["health"] == "/api/v1/health"


def test_restrictive_preferences(client: TestClient, monkeypatch):
    class FakePreferenceService:
        async def restrictive_preferences(self, db, user_id):
            return PreferenceSet.defaults(user_id=user_id).restrictive()

    monkeypatch.setattr("app.api.v1.preferences.PreferenceService", FakePreferenceService)
    override()

    r = client.get(f"{API}/preferences/user-1/restrictive")

    assert r.status_code == 200
    data = r.json()
    assert data["user_id"] == "user-1"
    assert "allow_data_selling" in data["restrictive_preferences"]
    assert "allow_usage_analytics" not in data["restrictive_preferences"]


def test_site_versions(client: TestClient):
    version = SimpleNamespace(
        id="v1", site_id="site-1", version_hash="a" * 64, content_type="privacy_policy",
        content_length=1200, detected_at=utcnow(), is_current=True,
    )
    risk_service = MagicMock()
    risk_service.sites.get_version_history = AsyncMock(return_value=[version])
    override(risk_service=risk_service)

    r = client.get(f"{API}/sites/site-1/versions", params={"content_type": "privacy_policy"})

    assert r.status_code == 200
    assert r.json()[0]["version_hash"] == "a" * 64
    args = risk_service.sites.get_version_history.call_args.args
    assert args[1:] == ("site-1", ContentType.PRIVACY_POLICY)


def test_second_decision_is_409(client: TestClient):
    risk_service = MagicMock()
    risk_service.personalization.record_decision = AsyncMock(
        side_effect=DecisionAlreadyRecordedError("Decision 'proceeded' already recorded")
    )
    override(risk_service=risk_service)

    r = client.put(f"{API}/history/h1/decision", json={"decision": "avoided"})

    assert r.status_code == 409
