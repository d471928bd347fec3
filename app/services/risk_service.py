"""
Risk Service
Entry points that combine the orchestrator with sites, preferences and history.
"""

import logging
from typing import Any, Callable, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_session_factory
from app.schemas.analysis import AnalysisResult, ContentType
from app.schemas.errors import NotFoundError
from app.schemas.personalization import PersonalizedAnalysis
from app.services.analysis_orchestrator import AnalysisOrchestrator
from app.services.personalization import PersonalizationEngine
from app.services.preference_service import PreferenceService
from app.services.site_service import SiteService
from app.utils.checksum import calculate_checksum

logger = logging.getLogger(__name__)

# Assumed average tokens per analysis and cost per token
AVERAGE_ANALYSIS_TOKENS = 1000
COST_PER_TOKEN = 0.002


def analysis_efficiency(cache_stats: Dict[str, Any]) -> Dict[str, float]:
    total = cache_stats.get("total_cached_analyses") or 0
    tokens_saved = cache_stats.get("cache_hit_potential") or 0
    if total <= 0:
        return {"cache_hit_ratio": 0, "tokens_saved": 0, "cost_saved_estimate": 0}
    ratio = tokens_saved / (total * AVERAGE_ANALYSIS_TOKENS)
    return {
        "cache_hit_ratio": round(ratio * 100, 2),
        "tokens_saved": tokens_saved,
        "cost_saved_estimate": tokens_saved * COST_PER_TOKEN,
    }


class RiskService:
    """Site analyses and personalized analyses"""

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        personalization: Optional[PersonalizationEngine] = None,
        preferences: Optional[PreferenceService] = None,
        sites: Optional[SiteService] = None,
        session_factory: Optional[Callable[[], AsyncSession]] = None
    ):
        self.orchestrator = orchestrator
        self.personalization = personalization or PersonalizationEngine()
        self.preferences = preferences or PreferenceService()
        self.sites = sites or SiteService(orchestrator.cache)
        self._session_factory = session_factory

    @property
    def session_factory(self) -> Callable[[], AsyncSession]:
        if self._session_factory is None:
            self._session_factory = get_session_factory()
        return self._session_factory

    async def analyze_site_content(
        self,
        site_id: str,
        content: str,
        content_type: Union[ContentType, str] = ContentType.TERMS_OF_SERVICE,
        refresh_stale: bool = False
    ) -> AnalysisResult:
        """
        Analyze a site's document and make it the site's current verdict.

        Raises:
            NotFoundError: If the site does not exist
        """
        async with self.session_factory() as db:
            site = await self.sites.get_site(db, site_id)
            if site is None:
                raise NotFoundError(f"Site {site_id} not found")
            await self.sites.record_document_version(
                db, site_id, content_type, calculate_checksum(content), len(content)
            )

        analysis = await self.orchestrator.analyze(
            content, content_type, site_id=site_id, refresh_stale=refresh_stale
        )

        async with self.session_factory() as db:
            await self.sites.upsert_site_risk_analysis(db, site_id, analysis)
            await self.sites.mark_crawled(db, site_id)
        return analysis

    async def analyze_for_user(
        self,
        user_id: str,
        site_id: str,
        content: str,
        content_type: Union[ContentType, str] = ContentType.TERMS_OF_SERVICE
    ) -> PersonalizedAnalysis:
        """
        Personalized analysis for one user.

        Raises:
            NotFoundError: If the site does not exist
            PreferenceError: If the user's stored preferences are malformed
        """
        async with self.session_factory() as db:
            site = await self.sites.get_site(db, site_id)
            if site is None:
                raise NotFoundError(f"Site {site_id} not found")
            preferences = await self.preferences.get_or_create(db, user_id)

        analysis = await self.orchestrator.analyze(content, content_type, site_id=site_id)

        async with self.session_factory() as db:
            return await self.personalization.personalize_and_record(
                db, user_id, site_id, analysis, preferences
            )

    async def analysis_summary(self, db: AsyncSession, trend_days: int = 7) -> Dict[str, Any]:
        """Cache statistics, recent trends and site risk distribution"""
        cache_stats = await self.orchestrator.cache.statistics(db)
        return {
            "cache_statistics": cache_stats,
            "recent_trends": await self.orchestrator.cache.recent_trends(db, trend_days),
            "risk_level_distribution": await self.sites.risk_level_distribution(db),
            "efficiency": analysis_efficiency(cache_stats),
        }
