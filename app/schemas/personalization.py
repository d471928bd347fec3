"""
Personalized analysis and alert schemas
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.analysis import AnalysisResult, AnalysisSource


class Recommendation(str, Enum):
    PROCEED = "proceed"
    CAUTION = "caution"
    AVOID = "avoid"


class UserDecision(str, Enum):
    PROCEEDED = "proceeded"
    AVOIDED = "avoided"
    IGNORED = "ignored"


class WarningSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AlertType(str, Enum):
    HIGH_RISK_VISIT = "high_risk_visit"
    PREFERENCE_VIOLATION = "preference_violation"
    NEW_TOS_DETECTED = "new_tos_detected"


class PreferenceWarning(BaseModel):
    """Human readable warning for one violated preference"""
    preference: str
    warning: str
    severity: WarningSeverity


class PersonalizedAnalysis(BaseModel):
    """Per-user verdict derived from a base analysis"""
    base_analysis: AnalysisResult
    personalized_risk_score: int
    violated_preferences: List[str] = Field(default_factory=list)
    personalized_warnings: List[PreferenceWarning] = Field(default_factory=list)
    user_recommendation: Recommendation
    history_id: Optional[str] = None

    @property
    def source(self) -> AnalysisSource:
        return self.base_analysis.source


class Alert(BaseModel):
    """Alert event handed to the alerting sink"""
    user_id: str
    site_id: Optional[str] = None
    alert_type: AlertType
    risk_score: Optional[int] = None
    violated_preferences: List[str] = Field(default_factory=list)
    message: str


class DecisionRequest(BaseModel):
    """Records what the user did after seeing a verdict"""
    decision: UserDecision


class HistoryEntry(BaseModel):
    """Stored personalized result"""
    id: str
    user_id: str
    site_id: str
    tos_analysis_cache_id: Optional[str] = None
    personalized_risk_score: Optional[int] = None
    violated_preferences: List[str] = Field(default_factory=list)
    personalized_warnings: List[PreferenceWarning] = Field(default_factory=list)
    user_recommendation: Optional[Recommendation] = None
    analysis_requested_at: datetime
    user_decision: Optional[UserDecision] = None
    decision_made_at: Optional[datetime] = None

    class Config:
        from_attributes = True
