"""
Site, clause library and alert API schemas
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.analysis import ContentType


class SiteCreateRequest(BaseModel):
    """Register a site for analysis"""
    domain: str = Field(..., min_length=1, max_length=255)
    name: Optional[str] = None
    tos_url: Optional[str] = None
    privacy_policy_url: Optional[str] = None


class SiteAnalysisRequest(BaseModel):
    """Analyze a site; without content the document is fetched from the scraper service"""
    content: Optional[str] = Field(None, min_length=1)
    content_type: ContentType = ContentType.TERMS_OF_SERVICE


class SiteResponse(BaseModel):
    id: str
    domain: str
    name: Optional[str] = None
    tos_url: Optional[str] = None
    privacy_policy_url: Optional[str] = None
    last_crawled_at: Optional[datetime] = None
    is_active: bool = True

    class Config:
        from_attributes = True


class SiteRiskAnalysisResponse(BaseModel):
    site_id: str
    overall_risk_score: int
    risk_level: str
    risk_color: Optional[str] = None
    category_scores: Dict[str, int] = Field(default_factory=dict)
    content_hash: Optional[str] = None
    content_type: Optional[str] = None
    analysis_date: datetime
    ai_model_version: Optional[str] = None
    confidence_score: Optional[float] = None
    recommendation_summary: Optional[str] = None

    class Config:
        from_attributes = True


class ClauseResponse(BaseModel):
    id: str
    clause_hash: str
    clause_text: str
    clause_summary: Optional[str] = None
    risk_category: str
    risk_level: str
    risk_score: Optional[int] = None
    explanation: Optional[str] = None
    user_impact: Optional[str] = None
    mitigation_advice: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    found_in_sites_count: int
    last_seen_at: Optional[datetime] = None
    created_by_ai_model: Optional[str] = None

    class Config:
        from_attributes = True


class AlertResponse(BaseModel):
    id: str
    user_id: str
    site_id: Optional[str] = None
    alert_type: str
    risk_score: Optional[int] = None
    violated_preferences: List[str] = Field(default_factory=list)
    message: str
    is_read: bool
    action_taken: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AlertActionRequest(BaseModel):
    action: str = Field(..., pattern="^(ignored|blocked|proceeded_anyway)$")


class TosVersionResponse(BaseModel):
    id: str
    site_id: str
    version_hash: str
    content_type: str
    content_length: Optional[int] = None
    detected_at: datetime
    is_current: bool

    class Config:
        from_attributes = True
