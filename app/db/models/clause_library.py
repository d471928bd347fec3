"""
Clause Library database models
Deduplicated risky clauses, keyed by clause checksum, and the sites they were found on
"""

from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class ClauseLibrary(Base):
    """
    Model for a risky clause seen in one or more documents.

    found_in_sites_count is the number of times the clause has been
    reported by an analysis; it only ever grows.
    """
    __tablename__ = "clause_library"

    id = Column(String(36), primary_key=True, default=new_id)
    clause_hash = Column(String(64), nullable=False, unique=True)
    clause_text = Column(Text, nullable=False)
    clause_summary = Column(Text, nullable=True)

    # Classification
    risk_category = Column(String(64), nullable=False)
    risk_level = Column(String(16), nullable=False)  # low | medium | high | critical
    risk_score = Column(Integer, nullable=True)  # 1-100
    explanation = Column(Text, nullable=True)
    user_impact = Column(Text, nullable=True)
    mitigation_advice = Column(Text, nullable=True)
    clause_type = Column(String(64), nullable=True)
    keywords = Column(JSONB, nullable=False, default=list)
    language = Column(String(8), nullable=False, default="en")

    # Usage tracking
    found_in_sites_count = Column(Integer, nullable=False, default=1)
    last_seen_at = Column(DateTime(timezone=True), nullable=True)
    created_by_ai_model = Column(String(64), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_clause_library_risk_category', 'risk_category'),
        Index('idx_clause_library_risk_level', 'risk_level'),
        Index('idx_clause_library_clause_type', 'clause_type'),
    )

    def __repr__(self):
        return f"<ClauseLibrary(hash='{self.clause_hash[:16]}...', level='{self.risk_level}')>"


class SiteClauseAssociation(Base):
    """Links a library clause to a site whose documents contain it"""
    __tablename__ = "site_clause_associations"

    id = Column(String(36), primary_key=True, default=new_id)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    clause_id = Column(String(36), ForeignKey("clause_library.id", ondelete="CASCADE"), nullable=False)
    clause_position = Column(Integer, nullable=True)
    section_name = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('site_id', 'clause_id', name='uq_site_clause'),
        Index('idx_site_clause_site_id', 'site_id'),
        Index('idx_site_clause_clause_id', 'clause_id'),
    )
