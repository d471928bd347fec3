"""
Clause Library Service
Deduplicated store of risky clauses shared across sites.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import new_id, utcnow
from app.db.models.clause_library import ClauseLibrary, SiteClauseAssociation
from app.schemas.analysis import DetectedClause
from app.utils.checksum import calculate_clause_checksum

logger = logging.getLogger(__name__)

RISK_LEVEL_SCORES = {
    "critical": 95,
    "high": 80,
    "medium": 60,
    "low": 30,
}

MAX_KEYWORDS = 10
MIN_KEYWORD_LENGTH = 4

SIMILARITY_THRESHOLD = 0.8
SIMILARITY_SEARCH_LIMIT = 20

# Refreshed on every sighting; created_by_ai_model keeps its first value.
_DESCRIPTIVE_COLUMNS = (
    "clause_summary",
    "risk_category",
    "risk_level",
    "risk_score",
    "explanation",
    "user_impact",
    "mitigation_advice",
    "clause_type",
    "keywords",
)


def extract_keywords(clause_text: str) -> List[str]:
    """First ten lowercased words longer than three characters"""
    words = [word for word in clause_text.lower().split() if len(word) >= MIN_KEYWORD_LENGTH]
    return words[:MAX_KEYWORDS]


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity of the lowercased word sets"""
    words1 = set(text1.lower().split())
    words2 = set(text2.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def clause_values(clause: Union[DetectedClause, Dict[str, Any]], model: Optional[str]) -> Dict[str, Any]:
    """Column values for a detected clause"""
    if isinstance(clause, dict):
        clause = DetectedClause.model_validate(clause)
    return {
        "clause_hash": calculate_clause_checksum(clause.clause_text),
        "clause_text": clause.clause_text,
        "clause_summary": clause.explanation or None,
        "risk_category": clause.risk_category,
        "risk_level": clause.risk_level,
        "risk_score": RISK_LEVEL_SCORES[clause.risk_level],
        "explanation": clause.explanation or None,
        "user_impact": clause.user_impact or None,
        "mitigation_advice": clause.mitigation_advice or None,
        "clause_type": clause.risk_category,
        "keywords": extract_keywords(clause.clause_text),
        "created_by_ai_model": model,
    }


class ClauseLibraryService:
    """
    Service for the clause library.

    Writes are staged on the caller's session and committed by the caller.
    """

    async def upsert_clause(
        self,
        db: AsyncSession,
        clause: Union[DetectedClause, Dict[str, Any]],
        model: Optional[str] = None
    ) -> ClauseLibrary:
        """
        Insert a clause, or count another sighting of a known one.

        The popularity increment is done by the database in the same
        statement, so concurrent sightings are never lost and never create
        a second row for the same clause_hash.
        """
        values = clause_values(clause, model)
        now = utcnow()

        stmt = pg_insert(ClauseLibrary).values(
            id=new_id(),
            found_in_sites_count=1,
            last_seen_at=now,
            language="en",
            **values,
        )
        update_columns = {column: stmt.excluded[column] for column in _DESCRIPTIVE_COLUMNS}
        update_columns["found_in_sites_count"] = ClauseLibrary.found_in_sites_count + 1
        update_columns["last_seen_at"] = now
        update_columns["updated_at"] = func.now()
        stmt = (
            stmt.on_conflict_do_update(
                index_elements=["clause_hash"],
                set_=update_columns,
            )
            .returning(ClauseLibrary)
            .execution_options(populate_existing=True)
        )

        result = await db.execute(stmt)
        record = result.scalar_one()
        logger.debug(
            f"Upserted clause {values['clause_hash'][:16]}... "
            f"(seen {record.found_in_sites_count} times)"
        )
        return record

    async def associate_with_site(
        self,
        db: AsyncSession,
        site_id: str,
        clause_id: str,
        clause_position: Optional[int] = None,
        section_name: Optional[str] = None
    ) -> None:
        """Link a clause to a site; an existing link is left as it is"""
        stmt = pg_insert(SiteClauseAssociation).values(
            id=new_id(),
            site_id=site_id,
            clause_id=clause_id,
            clause_position=clause_position,
            section_name=section_name[:255] if section_name else None,
        ).on_conflict_do_nothing(index_elements=["site_id", "clause_id"])
        await db.execute(stmt)

    async def search_clauses(
        self,
        db: AsyncSession,
        search_term: str,
        limit: int = 10
    ) -> List[ClauseLibrary]:
        """Clauses whose text or summary contains the term, or that carry it as a keyword"""
        pattern = f"%{search_term}%"
        stmt = (
            select(ClauseLibrary)
            .where(
                or_(
                    ClauseLibrary.clause_text.ilike(pattern),
                    ClauseLibrary.clause_summary.ilike(pattern),
                    ClauseLibrary.keywords.contains([search_term]),
                )
            )
            .order_by(ClauseLibrary.found_in_sites_count.desc(), ClauseLibrary.risk_score.desc())
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_clauses_by_risk_level(self, db: AsyncSession, risk_level: str) -> List[ClauseLibrary]:
        if risk_level not in RISK_LEVEL_SCORES:
            raise ValueError(f"Unknown risk level: {risk_level}")
        stmt = (
            select(ClauseLibrary)
            .where(ClauseLibrary.risk_level == risk_level)
            .order_by(ClauseLibrary.risk_score.desc(), ClauseLibrary.found_in_sites_count.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def get_site_clauses(self, db: AsyncSession, site_id: str) -> List[ClauseLibrary]:
        stmt = (
            select(ClauseLibrary)
            .join(SiteClauseAssociation, SiteClauseAssociation.clause_id == ClauseLibrary.id)
            .where(SiteClauseAssociation.site_id == site_id)
            .order_by(ClauseLibrary.risk_score.desc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def find_similar_clauses(
        self,
        db: AsyncSession,
        clause_text: str,
        threshold: float = SIMILARITY_THRESHOLD
    ) -> List[ClauseLibrary]:
        """
        Library clauses whose word-set Jaccard similarity to clause_text
        reaches the threshold. Candidates come from search_clauses.
        """
        candidates = await self.search_clauses(db, clause_text, limit=SIMILARITY_SEARCH_LIMIT)
        return [
            clause for clause in candidates
            if text_similarity(clause_text, clause.clause_text) >= threshold
        ]
