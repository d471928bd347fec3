"""
Analysis Cache Service
Content-addressed store of complete analyses keyed by (content_hash, content_type).
"""

import logging
from datetime import timedelta
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.db.base import new_id, utcnow
from app.db.models.analysis_cache import TosAnalysisCache
from app.db.models.clause_library import ClauseLibrary
from app.schemas.analysis import ContentType

logger = logging.getLogger(__name__)

# Columns replaced when a key is re-analyzed. access_count and
# last_accessed_at are kept across re-analysis.
_ANALYSIS_COLUMNS = (
    "site_id",
    "content_length",
    "language",
    "overall_risk_score",
    "risk_analysis",
    "detected_clauses",
    "risk_explanations",
    "recommendation_summary",
    "ai_model_used",
    "analysis_version",
    "tokens_used",
    "analysis_duration_ms",
    "confidence_score",
    "analyzed_at",
)


def _type_value(content_type: Union[ContentType, str]) -> str:
    return ContentType(content_type).value


class AnalysisCacheService:
    """
    Service for the analysis cache table.

    lookup, mark_stale and evict commit their own work. store only stages
    the upsert so the caller can commit it together with clause upserts.
    """

    async def lookup(
        self,
        db: AsyncSession,
        content_hash: str,
        content_type: Union[ContentType, str]
    ) -> Optional[TosAnalysisCache]:
        """
        Get a cached analysis and record the access.

        The access_count increment and last_accessed_at update happen in the
        same UPDATE ... RETURNING statement, so concurrent readers never lose
        an increment.
        """
        stmt = (
            update(TosAnalysisCache)
            .where(
                TosAnalysisCache.content_hash == content_hash,
                TosAnalysisCache.content_type == _type_value(content_type),
            )
            .values(
                access_count=TosAnalysisCache.access_count + 1,
                last_accessed_at=utcnow(),
            )
            .returning(TosAnalysisCache)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        result = await db.execute(stmt)
        cache_entry = result.scalar_one_or_none()
        await db.commit()

        if cache_entry is not None:
            logger.debug(
                f"Cache hit for {content_hash[:16]}... ({cache_entry.content_type}), "
                f"access_count={cache_entry.access_count}"
            )
        return cache_entry

    async def is_cached(
        self,
        db: AsyncSession,
        content_hash: str,
        content_type: Union[ContentType, str]
    ) -> bool:
        """Check for a cached analysis without touching access telemetry"""
        stmt = select(
            select(TosAnalysisCache.id)
            .where(
                TosAnalysisCache.content_hash == content_hash,
                TosAnalysisCache.content_type == _type_value(content_type),
            )
            .exists()
        )
        result = await db.execute(stmt)
        return bool(result.scalar())

    async def store(
        self,
        db: AsyncSession,
        content_hash: str,
        content_type: Union[ContentType, str],
        analysis: Dict[str, Any]
    ) -> TosAnalysisCache:
        """
        Insert an analysis, or replace the analysis of an existing key.

        Replacing clears is_stale and keeps access_count / last_accessed_at.
        The caller commits.

        Args:
            db: Database session
            content_hash: Checksum of the analyzed content
            content_type: Document type
            analysis: Column values, see _ANALYSIS_COLUMNS

        Returns:
            The stored row
        """
        values = {column: analysis.get(column) for column in _ANALYSIS_COLUMNS}
        if values["analyzed_at"] is None:
            values["analyzed_at"] = utcnow()
        if values["language"] is None:
            values["language"] = "en"
        if values["detected_clauses"] is None:
            values["detected_clauses"] = []

        stmt = pg_insert(TosAnalysisCache).values(
            id=new_id(),
            content_hash=content_hash,
            content_type=_type_value(content_type),
            access_count=0,
            last_accessed_at=values["analyzed_at"],
            is_stale=False,
            **values,
        )
        update_columns = {column: stmt.excluded[column] for column in _ANALYSIS_COLUMNS}
        update_columns["is_stale"] = False
        update_columns["updated_at"] = func.now()
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=["content_hash", "content_type"],
                set_=update_columns,
            )
            .returning(TosAnalysisCache)
            .execution_options(populate_existing=True)
        )

        result = await db.execute(stmt)
        cache_entry = result.scalar_one()
        logger.info(f"Stored analysis for {content_hash[:16]}... ({_type_value(content_type)})")
        return cache_entry

    async def mark_stale(self, db: AsyncSession, site_id: str) -> int:
        """
        Flag every analysis attributed to a site for re-analysis.

        Nothing is deleted or recomputed here.

        Returns:
            Number of rows flagged
        """
        stmt = (
            update(TosAnalysisCache)
            .where(TosAnalysisCache.site_id == site_id)
            .values(is_stale=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        count = result.rowcount or 0
        logger.info(f"Marked {count} cached analyses stale for site {site_id}")
        return count

    async def evict(
        self,
        db: AsyncSession,
        retention_days: Optional[int] = None,
        min_access_count: Optional[int] = None
    ) -> int:
        """
        Delete rows that are both old and rarely used.

        A row goes only when last_accessed_at is older than the horizon AND
        access_count is below the threshold.

        Returns:
            Number of rows deleted
        """
        if retention_days is None:
            retention_days = settings.CACHE_RETENTION_DAYS
        if min_access_count is None:
            min_access_count = settings.CACHE_MIN_ACCESS_COUNT

        cutoff = utcnow() - timedelta(days=retention_days)
        last_touched_before_cutoff = or_(
            TosAnalysisCache.last_accessed_at < cutoff,
            and_(
                TosAnalysisCache.last_accessed_at.is_(None),
                TosAnalysisCache.analyzed_at < cutoff,
            ),
        )
        stmt = (
            delete(TosAnalysisCache)
            .where(last_touched_before_cutoff, TosAnalysisCache.access_count < min_access_count)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        await db.commit()
        count = result.rowcount or 0
        logger.info(
            f"Evicted {count} cached analyses "
            f"(older than {retention_days} days, fewer than {min_access_count} accesses)"
        )
        return count

    async def statistics(self, db: AsyncSession) -> Dict[str, Any]:
        """Cache statistics for monitoring"""
        total_entries = (await db.execute(select(func.count(TosAnalysisCache.id)))).scalar() or 0
        stale_entries = (await db.execute(
            select(func.count(TosAnalysisCache.id)).where(TosAnalysisCache.is_stale.is_(True))
        )).scalar() or 0
        total_tokens = (await db.execute(select(func.sum(TosAnalysisCache.tokens_used)))).scalar() or 0
        total_accesses = (await db.execute(select(func.sum(TosAnalysisCache.access_count)))).scalar() or 0
        total_clauses = (await db.execute(select(func.count(ClauseLibrary.id)))).scalar() or 0
        avg_confidence = (await db.execute(select(func.avg(TosAnalysisCache.confidence_score)))).scalar()

        return {
            "total_cached_analyses": int(total_entries),
            "stale_entries": int(stale_entries),
            "cache_hit_potential": int(total_tokens),
            "total_cache_hits": int(total_accesses),
            "total_clauses_identified": int(total_clauses),
            "average_confidence": round(float(avg_confidence), 2) if avg_confidence is not None else None,
        }

    async def recent_trends(self, db: AsyncSession, days: int = 7) -> List[Dict[str, Any]]:
        """Number of analyses stored per day over the last `days` days"""
        cutoff = utcnow() - timedelta(days=days)
        day = func.date(TosAnalysisCache.analyzed_at)
        stmt = (
            select(day, func.count(TosAnalysisCache.id))
            .where(TosAnalysisCache.analyzed_at >= cutoff)
            .group_by(day)
            .order_by(day)
        )
        result = await db.execute(stmt)
        return [{"date": str(date), "analyses": count} for date, count in result.all()]
