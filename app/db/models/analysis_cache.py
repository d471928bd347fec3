"""
ToS Analysis Cache database model
Stores complete AI analyses keyed by content checksum and document type
"""

from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class TosAnalysisCache(Base):
    """
    Model for caching document analysis results.

    One row per (content_hash, content_type). Rows are shared by every site
    serving byte-identical text, so analysis content is only ever replaced
    by a fresh analysis of the same key.
    """
    __tablename__ = "tos_analysis_cache"

    # Primary key
    id = Column(String(36), primary_key=True, default=new_id)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="SET NULL"), nullable=True)

    # Content identification
    content_hash = Column(String(64), nullable=False)  # SHA-256 of the content
    content_type = Column(String(32), nullable=False)  # terms_of_service | privacy_policy | combined
    content_length = Column(Integer, nullable=True)
    language = Column(String(8), nullable=False, default="en")

    # Analysis results
    overall_risk_score = Column(Integer, nullable=False)
    risk_analysis = Column(JSONB, nullable=False)  # category -> 0-100
    detected_clauses = Column(JSONB, nullable=False, default=list)
    risk_explanations = Column(JSONB, nullable=True)  # category -> [explanation]
    recommendation_summary = Column(Text, nullable=True)

    # Analysis metadata
    ai_model_used = Column(String(64), nullable=True)
    analysis_version = Column(String(32), nullable=True)
    tokens_used = Column(Integer, nullable=True)
    analysis_duration_ms = Column(Integer, nullable=True)
    confidence_score = Column(Float, nullable=True)

    # Cache management
    analyzed_at = Column(DateTime(timezone=True), nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=True)
    access_count = Column(Integer, nullable=False, default=0)
    is_stale = Column(Boolean, nullable=False, default=False)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Indexes
    __table_args__ = (
        UniqueConstraint('content_hash', 'content_type', name='uq_tos_cache_hash_type'),
        Index('idx_tos_cache_site_id', 'site_id'),
        Index('idx_tos_cache_analyzed_at', 'analyzed_at'),
        Index('idx_tos_cache_last_accessed_at', 'last_accessed_at'),
        Index('idx_tos_cache_is_stale', 'is_stale'),
    )

    def __repr__(self):
        return f"<TosAnalysisCache(hash='{self.content_hash[:16]}...', type='{self.content_type}')>"
