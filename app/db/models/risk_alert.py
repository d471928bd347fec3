"""
Risk Alert database model
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class RiskAlert(Base):
    """Alert raised for a user about a site"""
    __tablename__ = "risk_alerts"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False)
    site_id = Column(String(36), nullable=True)

    alert_type = Column(String(32), nullable=False)  # high_risk_visit | preference_violation | new_tos_detected
    risk_score = Column(Integer, nullable=True)
    violated_preferences = Column(JSONB, nullable=False, default=list)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    action_taken = Column(String(32), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_risk_alerts_user_read', 'user_id', 'is_read'),
    )

    def __repr__(self):
        return f"<RiskAlert(user_id='{self.user_id}', type='{self.alert_type}')>"
