"""
Site Service
Sites, their latest risk verdict and the document versions seen for them.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Union

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import new_id, utcnow
from app.db.models.analysis_cache import TosAnalysisCache
from app.db.models.site import Site, SiteRiskAnalysis, TosVersion
from app.schemas.analysis import AnalysisResult, ContentType
from app.services.analysis_cache import AnalysisCacheService

logger = logging.getLogger(__name__)


class SiteService:
    """Service for sites and their analysis bookkeeping"""

    def __init__(self, cache: Optional[AnalysisCacheService] = None):
        self.cache = cache or AnalysisCacheService()

    async def get_site(self, db: AsyncSession, site_id: str) -> Optional[Site]:
        return await db.get(Site, site_id)

    async def get_site_by_domain(self, db: AsyncSession, domain: str) -> Optional[Site]:
        result = await db.execute(select(Site).where(Site.domain == domain.lower()))
        return result.scalar_one_or_none()

    async def get_or_create_by_domain(
        self,
        db: AsyncSession,
        domain: str,
        name: Optional[str] = None,
        tos_url: Optional[str] = None,
        privacy_policy_url: Optional[str] = None
    ) -> Site:
        domain = domain.strip().lower()
        if not domain:
            raise ValueError("Domain is required")

        stmt = pg_insert(Site).values(
            id=new_id(),
            domain=domain,
            name=name or domain,
            tos_url=tos_url,
            privacy_policy_url=privacy_policy_url,
            is_active=True,
        ).on_conflict_do_nothing(index_elements=["domain"])
        result = await db.execute(stmt)
        await db.commit()
        if result.rowcount:
            logger.info(f"Registered site {domain}")
        return await self.get_site_by_domain(db, domain)

    async def list_sites(self, db: AsyncSession, active_only: bool = True) -> List[Site]:
        stmt = select(Site).order_by(Site.domain)
        if active_only:
            stmt = stmt.where(Site.is_active.is_(True))
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def list_sites_needing_analysis(
        self,
        db: AsyncSession,
        freshness_hours: float
    ) -> List[Site]:
        """
        Active sites with no risk verdict, a verdict older than
        freshness_hours, or a verdict whose cached analysis is stale.
        """
        threshold = utcnow() - timedelta(hours=freshness_hours)
        # Only the analysis behind the current verdict counts; superseded
        # document versions stay stale forever.
        has_stale_analysis = (
            select(TosAnalysisCache.id)
            .where(
                TosAnalysisCache.site_id == Site.id,
                TosAnalysisCache.content_hash == SiteRiskAnalysis.content_hash,
                TosAnalysisCache.is_stale.is_(True),
            )
            .exists()
        )
        stmt = (
            select(Site)
            .outerjoin(SiteRiskAnalysis, SiteRiskAnalysis.site_id == Site.id)
            .where(
                Site.is_active.is_(True),
                or_(
                    SiteRiskAnalysis.id.is_(None),
                    SiteRiskAnalysis.analysis_date < threshold,
                    has_stale_analysis,
                ),
            )
            .order_by(SiteRiskAnalysis.analysis_date.asc().nulls_first(), Site.domain)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def mark_crawled(self, db: AsyncSession, site_id: str) -> None:
        await db.execute(update(Site).where(Site.id == site_id).values(last_crawled_at=utcnow()))
        await db.commit()

    async def get_site_risk_analysis(self, db: AsyncSession, site_id: str) -> Optional[SiteRiskAnalysis]:
        result = await db.execute(select(SiteRiskAnalysis).where(SiteRiskAnalysis.site_id == site_id))
        return result.scalar_one_or_none()

    async def upsert_site_risk_analysis(
        self,
        db: AsyncSession,
        site_id: str,
        analysis: AnalysisResult
    ) -> SiteRiskAnalysis:
        """Replace a site's latest verdict with the given analysis"""
        values = dict(
            overall_risk_score=analysis.overall_risk_score,
            risk_level=analysis.risk_level,
            risk_color=analysis.risk_color,
            category_scores=analysis.risk_breakdown,
            content_hash=analysis.content_hash,
            content_type=analysis.content_type.value,
            analysis_date=utcnow(),
            ai_model_version=analysis.ai_model_version,
            confidence_score=analysis.confidence_score,
            recommendation_summary=analysis.recommendation_summary,
        )
        stmt = pg_insert(SiteRiskAnalysis).values(id=new_id(), site_id=site_id, **values)
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=["site_id"],
                set_={**values, "updated_at": func.now()},
            )
            .returning(SiteRiskAnalysis)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        record = result.scalar_one()
        await db.commit()
        logger.info(
            f"Site {site_id} risk: {analysis.overall_risk_score} ({analysis.risk_level}, "
            f"{analysis.ai_model_version})"
        )
        return record

    async def get_current_version(
        self,
        db: AsyncSession,
        site_id: str,
        content_type: Union[ContentType, str]
    ) -> Optional[TosVersion]:
        stmt = (
            select(TosVersion)
            .where(
                TosVersion.site_id == site_id,
                TosVersion.content_type == ContentType(content_type).value,
                TosVersion.is_current.is_(True),
            )
            .order_by(TosVersion.detected_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def record_document_version(
        self,
        db: AsyncSession,
        site_id: str,
        content_type: Union[ContentType, str],
        content_hash: str,
        content_length: Optional[int] = None
    ) -> bool:
        """
        Record the checksum of a site's document.

        When it differs from the current version, the new one becomes
        current and the site's cached analyses are marked stale.

        Returns:
            True if the document changed since the last recorded version
        """
        content_type = ContentType(content_type).value
        current = await self.get_current_version(db, site_id, content_type)
        if current is not None and current.version_hash == content_hash:
            return False

        await db.execute(
            update(TosVersion)
            .where(
                and_(
                    TosVersion.site_id == site_id,
                    TosVersion.content_type == content_type,
                    TosVersion.is_current.is_(True),
                )
            )
            .values(is_current=False)
        )
        db.add(TosVersion(
            site_id=site_id,
            version_hash=content_hash,
            content_type=content_type,
            content_length=content_length,
            detected_at=utcnow(),
            is_current=True,
        ))
        await db.commit()

        if current is None:
            logger.info(f"First {content_type} version recorded for site {site_id}")
            return False

        logger.info(f"{content_type} changed for site {site_id}, marking cached analyses stale")
        await self.cache.mark_stale(db, site_id)
        return True

    async def get_version_history(
        self,
        db: AsyncSession,
        site_id: str,
        content_type: Union[ContentType, str]
    ) -> List[TosVersion]:
        stmt = (
            select(TosVersion)
            .where(TosVersion.site_id == site_id, TosVersion.content_type == ContentType(content_type).value)
            .order_by(TosVersion.detected_at.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def risk_level_distribution(self, db: AsyncSession) -> Dict[str, int]:
        stmt = select(SiteRiskAnalysis.risk_level, func.count(SiteRiskAnalysis.id)).group_by(
            SiteRiskAnalysis.risk_level
        )
        result = await db.execute(stmt)
        return {level: count for level, count in result.all()}
