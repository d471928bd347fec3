"""
User Preference database model
One row per user; flags stored as a name -> bool map
"""

from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from app.db.base import Base, new_id


class UserPreference(Base):
    """
    Model for a user's privacy preferences.

    Only flags the user has set are guaranteed to be present in
    `preferences`; missing ones resolve to their defaults in PreferenceSet.
    """
    __tablename__ = "user_preferences"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, unique=True)
    preferences = Column(JSONB, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<UserPreference(user_id='{self.user_id}')>"
