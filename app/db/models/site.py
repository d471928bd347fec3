"""
Site database models
Sites, their latest risk verdict, and the document versions seen for them
"""

from sqlalchemy import Column, String, Text, Integer, Float, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class Site(Base):
    """A website whose legal documents are analyzed"""
    __tablename__ = "sites"

    id = Column(String(36), primary_key=True, default=new_id)
    domain = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    tos_url = Column(Text, nullable=True)
    privacy_policy_url = Column(Text, nullable=True)
    last_crawled_at = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Site(domain='{self.domain}')>"


class SiteRiskAnalysis(Base):
    """
    Latest risk verdict for a site.

    Written after every site analysis, including fallback ones, so the batch
    scheduler can tell when a site was last looked at.
    """
    __tablename__ = "site_risk_analyses"

    id = Column(String(36), primary_key=True, default=new_id)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, unique=True)

    overall_risk_score = Column(Integer, nullable=False)
    risk_level = Column(String(16), nullable=False)
    risk_color = Column(String(16), nullable=True)
    category_scores = Column(JSONB, nullable=False, default=dict)
    content_hash = Column(String(64), nullable=True)
    content_type = Column(String(32), nullable=True)

    analysis_date = Column(DateTime(timezone=True), nullable=False)
    ai_model_version = Column(String(64), nullable=True)
    confidence_score = Column(Float, nullable=True)
    recommendation_summary = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_site_risk_analysis_date', 'analysis_date'),
    )


class TosVersion(Base):
    """A version of a site's legal document, identified by its checksum"""
    __tablename__ = "tos_versions"

    id = Column(String(36), primary_key=True, default=new_id)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    version_hash = Column(String(64), nullable=False)
    content_type = Column(String(32), nullable=False)
    content_length = Column(Integer, nullable=True)
    detected_at = Column(DateTime(timezone=True), nullable=False)
    is_current = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_tos_versions_site_type', 'site_id', 'content_type'),
        Index('idx_tos_versions_is_current', 'is_current'),
    )
