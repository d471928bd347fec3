"""
Analysis Orchestrator
Checksum -> cache lookup -> quality gate -> AI analysis -> clause library -> cache store.

Any AI failure (timeout, API error, bad response) degrades to the rule-based
fallback scorer, whose results are never cached. Concurrent requests for the
same (checksum, content type) share one computation.
"""

import asyncio
import logging
import time
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.base import get_session_factory, utcnow
from app.schemas.analysis import (
    AIAnalysisResponse,
    AnalysisResult,
    AnalysisSource,
    AnalyzerOutput,
    ContentType,
    RiskCategory,
)
from app.schemas.errors import (
    AnalysisError,
    AnalysisValidationError,
    InsufficientContentError,
    ProviderError,
    ProviderTimeoutError,
    RECOVERABLE_ERRORS,
)
from app.schemas.openai import OpenAIError
from app.services.analysis_cache import AnalysisCacheService
from app.services.clause_library import ClauseLibraryService
from app.services.fallback_scorer import build_fallback_result
from app.services.quality_gate import QualityGate
from app.services.tos_analyzer import TosAnalyzer
from app.utils.checksum import calculate_checksum
from app.utils.singleflight import SingleFlight

logger = logging.getLogger(__name__)


def build_risk_explanations(clauses) -> Dict[str, List[str]]:
    """Clause explanations grouped by risk category"""
    explanations: Dict[str, List[str]] = defaultdict(list)
    for clause in clauses:
        if clause.explanation:
            explanations[clause.risk_category].append(clause.explanation)
    return dict(explanations)


class AnalysisOrchestrator:
    """
    Produces an analysis for a document, from the cache when possible.

    Each analysis opens its own session from session_factory.
    """

    def __init__(
        self,
        session_factory: Optional[Callable[[], AsyncSession]] = None,
        analyzer: Optional[Any] = None,
        cache: Optional[AnalysisCacheService] = None,
        clause_library: Optional[ClauseLibraryService] = None,
        quality_gate: Optional[QualityGate] = None,
        timeout: Optional[float] = None,
        enforce_quality_gate: Optional[bool] = None
    ):
        self._session_factory = session_factory
        self._analyzer = analyzer
        self.cache = cache or AnalysisCacheService()
        self.clause_library = clause_library or ClauseLibraryService()
        self.quality_gate = quality_gate or QualityGate()
        self.timeout = timeout if timeout is not None else settings.AI_ANALYSIS_TIMEOUT
        self.enforce_quality_gate = (
            enforce_quality_gate if enforce_quality_gate is not None else settings.QUALITY_GATE_ENFORCED
        )
        self._flight = SingleFlight()

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    @property
    def analyzer(self):
        """AI analyzer, created on first use so a missing API key only affects misses"""
        if self._analyzer is None:
            self._analyzer = TosAnalyzer()
        return self._analyzer

    async def analyze(
        self,
        content: str,
        content_type: Union[ContentType, str] = ContentType.TERMS_OF_SERVICE,
        site_id: Optional[str] = None,
        refresh_stale: bool = False
    ) -> AnalysisResult:
        """
        Analysis of a document: cached, fresh or fallback.

        Args:
            content: Document text
            content_type: Document type, the second half of the cache key
            site_id: Site the document belongs to, if known
            refresh_stale: Treat a stale cached analysis as a miss

        Raises:
            InsufficientContentError: Only when the quality gate is enforced
        """
        content_type = ContentType(content_type)
        content_hash = calculate_checksum(content)

        async with self.session_factory() as db:
            row = await self.cache.lookup(db, content_hash, content_type)
        if row is not None and not (refresh_stale and row.is_stale):
            logger.info(f"Cache hit for {content_hash[:16]}... ({content_type.value})")
            return AnalysisResult.from_cache(row, AnalysisSource.CACHED)

        key = (content_hash, content_type.value)
        result, shared = await self._flight.do(
            key,
            lambda: self._analyze_miss(content, content_type, content_hash, site_id, refresh_stale),
        )
        if shared:
            logger.info(f"Joined in-flight analysis for {content_hash[:16]}... ({content_type.value})")
        return result

    async def _analyze_miss(
        self,
        content: str,
        content_type: ContentType,
        content_hash: str,
        site_id: Optional[str],
        refresh_stale: bool
    ) -> AnalysisResult:
        # Another caller may have stored it between our lookup and taking the flight.
        async with self.session_factory() as db:
            if await self.cache.is_cached(db, content_hash, content_type):
                row = await self.cache.lookup(db, content_hash, content_type)
                if row is not None and not (refresh_stale and row.is_stale):
                    return AnalysisResult.from_cache(row, AnalysisSource.CACHED)

        report = self.quality_gate.analyze(content)
        if not report.is_analyzable:
            if self.enforce_quality_gate:
                raise InsufficientContentError(
                    f"Content quality too low for analysis ({report.quality_score:.2f})",
                    report=report,
                )
            logger.warning(
                f"Low quality content {content_hash[:16]}... ({report.quality_score:.2f}): "
                f"{'; '.join(report.recommendations)}. Analyzing anyway"
            )

        # No session is held while the analyzer runs
        started = time.monotonic()
        try:
            output = await self._run_analyzer(content, content_type)
            response = self._validate(output)
        except RECOVERABLE_ERRORS as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            logger.warning(
                f"AI analysis failed for {content_hash[:16]}... ({e.error_type.value}): {e.message}. "
                f"Using rule-based fallback"
            )
            return build_fallback_result(content, content_type, content_hash, site_id, duration_ms)

        duration_ms = int((time.monotonic() - started) * 1000)
        async with self.session_factory() as db:
            return await self._persist(
                db, content, content_type, content_hash, site_id,
                output, response, report.metrics.language, duration_ms,
            )

    async def _run_analyzer(self, content: str, content_type: ContentType) -> AnalyzerOutput:
        """Call the AI analyzer under the timeout, mapping every failure to an AnalysisError"""
        try:
            analyzer = self.analyzer
            return await asyncio.wait_for(
                analyzer.analyze(content, content_type, tuple(RiskCategory)),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(f"AI analysis timed out after {self.timeout}s", cause=e) from e
        except AnalysisError:
            raise
        except OpenAIError as e:
            raise ProviderError(f"OpenAI error ({e.error_type.value}): {e.message}", cause=e) from e
        except Exception as e:
            logger.error(f"Unexpected AI analyzer failure: {e}", exc_info=True)
            raise ProviderError(f"AI analyzer failed: {e}", cause=e) from e

    @staticmethod
    def _validate(output: AnalyzerOutput) -> AIAnalysisResponse:
        try:
            return AIAnalysisResponse.model_validate(output.payload)
        except ValidationError as e:
            raise AnalysisValidationError(
                f"AI response violates contract: {e.error_count()} errors", cause=e
            ) from e

    async def _persist(
        self,
        db: AsyncSession,
        content: str,
        content_type: ContentType,
        content_hash: str,
        site_id: Optional[str],
        output: AnalyzerOutput,
        response: AIAnalysisResponse,
        language: str,
        duration_ms: int
    ) -> AnalysisResult:
        """Store clauses and the analysis in one transaction"""
        try:
            for clause in response.detected_clauses:
                record = await self.clause_library.upsert_clause(db, clause, output.model)
                if site_id:
                    await self.clause_library.associate_with_site(
                        db, site_id, record.id, clause.position, clause.section
                    )

            row = await self.cache.store(db, content_hash, content_type, {
                "site_id": site_id,
                "content_length": len(content),
                "language": language,
                "overall_risk_score": response.overall_risk_score,
                "risk_analysis": response.risk_breakdown,
                "detected_clauses": [clause.model_dump() for clause in response.detected_clauses],
                "risk_explanations": build_risk_explanations(response.detected_clauses),
                "recommendation_summary": response.recommendation_summary,
                "ai_model_used": output.model,
                "analysis_version": settings.ANALYSIS_VERSION,
                "tokens_used": output.tokens_used,
                "analysis_duration_ms": duration_ms,
                "confidence_score": response.confidence_score,
                "analyzed_at": utcnow(),
            })
            await db.commit()
        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to store analysis {content_hash[:16]}...: {e}", exc_info=True)
            raise

        logger.info(
            f"Fresh analysis stored for {content_hash[:16]}... ({content_type.value}): "
            f"score {response.overall_risk_score}, {len(response.detected_clauses)} clauses, "
            f"{output.tokens_used} tokens, {duration_ms}ms"
        )
        return AnalysisResult.from_cache(row, AnalysisSource.FRESH)
