"""Tests for the analysis orchestrator: cache, coalescing, quality gate and fallback."""
import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import FakeSessionFactory, ai_payload, cache_row
from app.schemas.analysis import AnalysisSource, AnalyzerOutput, ContentType
from app.schemas.errors import InsufficientContentError, ProviderError
from app.services.analysis_orchestrator import AnalysisOrchestrator, build_risk_explanations
from app.services.fallback_scorer import FALLBACK_MODEL_VERSION
from app.utils.checksum import calculate_checksum

CONTENT = "We may sell your personal data to our partners and track your location."


class FakeAnalyzer:
    def __init__(self, payload=None, delay=0.0, error=None):
        self.payload = payload if payload is not None else ai_payload()
        self.delay = delay
        self.error = error
        self.calls = 0

    async def analyze(self, content, content_type, categories):
        self.calls += 1
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return AnalyzerOutput(payload=self.payload, model="gpt-4o-mini", tokens_used=850)


def fake_cache(row=None):
    cache = MagicMock()
    cache.lookup = AsyncMock(return_value=row)
    cache.is_cached = AsyncMock(return_value=row is not None)

    async def store(db, content_hash, content_type, analysis):
        return cache_row(
            id="cache-new",
            content_hash=content_hash,
            content_type=ContentType(content_type).value,
            access_count=0,
            **analysis,
        )

    cache.store = AsyncMock(side_effect=store)
    return cache


def fake_clause_library():
    library = MagicMock()
    library.upsert_clause = AsyncMock(return_value=SimpleNamespace(id="clause-1"))
    library.associate_with_site = AsyncMock()
    return library


def passing_gate():
    gate = MagicMock()
    gate.analyze.return_value = SimpleNamespace(
        is_analyzable=True,
        quality_score=0.9,
        recommendations=[],
        metrics=SimpleNamespace(language="en"),
    )
    return gate


def failing_gate():
    gate = MagicMock()
    gate.analyze.return_value = SimpleNamespace(
        is_analyzable=False,
        quality_score=0.3,
        recommendations=["Content appears too short for comprehensive analysis"],
        metrics=SimpleNamespace(language="en"),
    )
    return gate


def orchestrator(analyzer=None, cache=None, gate=None, timeout=5.0, enforce=False, sessions=None):
    return AnalysisOrchestrator(
        session_factory=sessions or FakeSessionFactory(),
        analyzer=analyzer or FakeAnalyzer(),
        cache=cache or fake_cache(),
        clause_library=fake_clause_library(),
        quality_gate=gate or passing_gate(),
        timeout=timeout,
        enforce_quality_gate=enforce,
    )


@pytest.mark.asyncio
async def test_cache_hit_skips_analyzer():
    analyzer = FakeAnalyzer()
    cache = fake_cache(row=cache_row(content_hash=calculate_checksum(CONTENT)))
    orch = orchestrator(analyzer=analyzer, cache=cache)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.CACHED
    assert result.cache_id == "cache-1"
    assert analyzer.calls == 0
    cache.lookup.assert_awaited_once_with(
        cache.lookup.call_args.args[0], calculate_checksum(CONTENT), ContentType.TERMS_OF_SERVICE
    )


@pytest.mark.asyncio
async def test_miss_runs_analyzer_and_stores():
    analyzer = FakeAnalyzer()
    cache = fake_cache()
    sessions = FakeSessionFactory()
    orch = orchestrator(analyzer=analyzer, cache=cache, sessions=sessions)

    result = await orch.analyze(CONTENT, ContentType.PRIVACY_POLICY, site_id="site-1")

    assert result.source == AnalysisSource.FRESH
    assert result.overall_risk_score == 72
    assert result.risk_level == "high"
    assert result.content_type == ContentType.PRIVACY_POLICY
    assert analyzer.calls == 1

    cache.store.assert_awaited_once()
    _, content_hash, content_type, stored = cache.store.call_args.args
    assert content_hash == calculate_checksum(CONTENT)
    assert content_type == ContentType.PRIVACY_POLICY
    assert stored["site_id"] == "site-1"
    assert stored["tokens_used"] == 850
    assert stored["risk_explanations"] == {"data_sharing": ["Data may be sold"]}
    assert stored["detected_clauses"][0]["risk_level"] == "high"

    orch.clause_library.upsert_clause.assert_awaited_once()
    orch.clause_library.associate_with_site.assert_awaited_once_with(
        sessions.session, "site-1", "clause-1", 12, "4. Sharing"
    )
    sessions.session.commit.assert_awaited()


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_analysis():
    analyzer = FakeAnalyzer(delay=0.05)
    cache = fake_cache()
    orch = orchestrator(analyzer=analyzer, cache=cache)

    results = await asyncio.gather(*(orch.analyze(CONTENT) for _ in range(5)))

    assert analyzer.calls == 1
    assert cache.store.await_count == 1
    assert {r.cache_id for r in results} == {"cache-new"}


@pytest.mark.asyncio
async def test_different_content_types_are_analyzed_separately():
    analyzer = FakeAnalyzer(delay=0.01)
    orch = orchestrator(analyzer=analyzer)

    await asyncio.gather(
        orch.analyze(CONTENT, ContentType.TERMS_OF_SERVICE),
        orch.analyze(CONTENT, ContentType.PRIVACY_POLICY),
    )

    assert analyzer.calls == 2


@pytest.mark.asyncio
async def test_timeout_falls_back_without_caching():
    analyzer = FakeAnalyzer(delay=1.0)
    cache = fake_cache()
    orch = orchestrator(analyzer=analyzer, cache=cache, timeout=0.01)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FALLBACK
    assert result.ai_model_version == FALLBACK_MODEL_VERSION
    assert result.confidence_score == 0.5
    # "sell" + "track" + "location"
    assert result.overall_risk_score == 50
    cache.store.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_error_falls_back():
    orch = orchestrator(analyzer=FakeAnalyzer(error=ProviderError("boom")))
    result = await orch.analyze(CONTENT)
    assert result.source == AnalysisSource.FALLBACK


@pytest.mark.asyncio
async def test_unexpected_analyzer_exception_falls_back():
    orch = orchestrator(analyzer=FakeAnalyzer(error=KeyError("choices")))
    result = await orch.analyze(CONTENT)
    assert result.source == AnalysisSource.FALLBACK


@pytest.mark.asyncio
async def test_contract_violation_falls_back():
    payload = ai_payload()
    del payload["risk_breakdown"]["communication"]
    cache = fake_cache()
    orch = orchestrator(analyzer=FakeAnalyzer(payload=payload), cache=cache)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FALLBACK
    cache.store.assert_not_awaited()


@pytest.mark.asyncio
async def test_out_of_range_score_falls_back():
    orch = orchestrator(analyzer=FakeAnalyzer(payload=ai_payload(score=140)))
    result = await orch.analyze(CONTENT)
    assert result.source == AnalysisSource.FALLBACK


@pytest.mark.asyncio
async def test_low_quality_content_is_analyzed_when_gate_not_enforced():
    analyzer = FakeAnalyzer()
    orch = orchestrator(analyzer=analyzer, gate=failing_gate(), enforce=False)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FRESH
    assert analyzer.calls == 1


@pytest.mark.asyncio
async def test_enforced_gate_rejects_low_quality_content():
    analyzer = FakeAnalyzer()
    orch = orchestrator(analyzer=analyzer, gate=failing_gate(), enforce=True)

    with pytest.raises(InsufficientContentError) as exc_info:
        await orch.analyze(CONTENT)

    assert exc_info.value.report.quality_score == 0.3
    assert analyzer.calls == 0


@pytest.mark.asyncio
async def test_stale_row_is_served_unless_refresh_requested():
    analyzer = FakeAnalyzer()
    stale = cache_row(is_stale=True)
    orch = orchestrator(analyzer=analyzer, cache=fake_cache(row=stale))

    served = await orch.analyze(CONTENT)
    assert served.source == AnalysisSource.CACHED
    assert served.is_stale
    assert analyzer.calls == 0

    refreshed = await orch.analyze(CONTENT, refresh_stale=True)
    assert refreshed.source == AnalysisSource.FRESH
    assert analyzer.calls == 1


@pytest.mark.asyncio
async def test_store_failure_rolls_back_and_raises():
    cache = fake_cache()
    cache.store = AsyncMock(side_effect=RuntimeError("db down"))
    sessions = FakeSessionFactory()
    orch = orchestrator(cache=cache, sessions=sessions)

    with pytest.raises(RuntimeError):
        await orch.analyze(CONTENT)

    sessions.session.rollback.assert_awaited_once()


def test_build_risk_explanations_groups_by_category():
    clauses = [
        SimpleNamespace(risk_category="data_sharing", explanation="sold"),
        SimpleNamespace(risk_category="data_sharing", explanation="shared"),
        SimpleNamespace(risk_category="data_retention", explanation=""),
    ]
    assert build_risk_explanations(clauses) == {"data_sharing": ["sold", "shared"]}


@pytest.mark.asyncio
async def test_no_session_is_held_during_ai_call():
    sessions = FakeSessionFactory()
    open_during_call = []

    class RecordingAnalyzer(FakeAnalyzer):
        async def analyze(self, content, content_type, categories):
            open_during_call.append(sessions.session.open)
            return await super().analyze(content, content_type, categories)

    cache = fake_cache()
    orch = orchestrator(analyzer=RecordingAnalyzer(), cache=cache, sessions=sessions)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FRESH
    assert open_during_call == [0]
    assert sessions.session.open == 0
    cache.store.assert_awaited_once()


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [
    ("overall_risk_score", "75"),
    ("overall_risk_score", 75.0),
    ("overall_risk_score", True),
    ("confidence_score", "0.9"),
])
async def test_mistyped_scores_fall_back(field, value):
    payload = ai_payload()
    payload[field] = value
    cache = fake_cache()
    orch = orchestrator(analyzer=FakeAnalyzer(payload=payload), cache=cache)

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FALLBACK
    cache.store.assert_not_awaited()


@pytest.mark.asyncio
async def test_mistyped_breakdown_score_falls_back():
    payload = ai_payload()
    payload["risk_breakdown"]["data_sharing"] = "72"
    orch = orchestrator(analyzer=FakeAnalyzer(payload=payload))

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FALLBACK


@pytest.mark.asyncio
async def test_integer_confidence_is_accepted():
    payload = ai_payload()
    payload["confidence_score"] = 1
    orch = orchestrator(analyzer=FakeAnalyzer(payload=payload))

    result = await orch.analyze(CONTENT)

    assert result.source == AnalysisSource.FRESH
