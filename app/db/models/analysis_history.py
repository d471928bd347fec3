"""
User Analysis History database model
Personalized verdicts shown to users, plus what they decided afterwards
"""

from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class UserAnalysisHistory(Base):
    """
    Model for one personalized analysis shown to a user for a site.

    Written once; only user_decision / decision_made_at change afterwards.
    tos_analysis_cache_id is empty when the verdict was built on a fallback
    analysis, which is never cached.
    """
    __tablename__ = "user_analysis_history"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    site_id = Column(String(36), ForeignKey("sites.id", ondelete="CASCADE"), nullable=False)
    tos_analysis_cache_id = Column(
        String(36), ForeignKey("tos_analysis_cache.id", ondelete="SET NULL"), nullable=True
    )

    personalized_risk_score = Column(Integer, nullable=True)
    violated_preferences = Column(JSONB, nullable=False, default=list)
    personalized_warnings = Column(JSONB, nullable=False, default=list)
    user_recommendation = Column(String(16), nullable=True)  # proceed | caution | avoid
    analysis_requested_at = Column(DateTime(timezone=True), nullable=False)

    user_decision = Column(String(16), nullable=True)  # proceeded | avoided | ignored
    decision_made_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_user_history_user_site', 'user_id', 'site_id'),
        Index('idx_user_history_requested_at', 'analysis_requested_at'),
    )

    def __repr__(self):
        return f"<UserAnalysisHistory(user_id='{self.user_id}', site_id='{self.site_id}')>"
