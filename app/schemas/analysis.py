"""
Analysis schemas: AI analyzer contract and analysis results
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, StrictInt, field_validator

from app.utils.risk_levels import classify


class ContentType(str, Enum):
    """Kinds of legal documents the cache is keyed on"""
    TERMS_OF_SERVICE = "terms_of_service"
    PRIVACY_POLICY = "privacy_policy"
    COMBINED = "combined"


class RiskCategory(str, Enum):
    """Risk taxonomy sent to the analyzer and used by the breakdown"""
    DATA_SHARING = "data_sharing"
    DATA_COLLECTION = "data_collection"
    PERSONALIZATION_TRACKING = "personalization_tracking"
    DATA_RETENTION = "data_retention"
    EMPLOYEE_ACCESS = "employee_access"
    CROSS_BORDER_TRANSFER = "cross_border_transfer"
    SECURITY_PRACTICES = "security_practices"
    AI_CONCERNS = "ai_concerns"
    COMMUNICATION = "communication"
    MISCELLANEOUS_RISKS = "miscellaneous_risks"


RISK_CATEGORIES = [category.value for category in RiskCategory]

CATEGORY_DESCRIPTIONS = {
    RiskCategory.DATA_SHARING: "Data Sharing & Selling practices",
    RiskCategory.DATA_COLLECTION: "Data Collection methods",
    RiskCategory.PERSONALIZATION_TRACKING: "Personalization & Tracking",
    RiskCategory.DATA_RETENTION: "Data Retention policies",
    RiskCategory.EMPLOYEE_ACCESS: "Employee Access rights",
    RiskCategory.CROSS_BORDER_TRANSFER: "Cross-Border Data Transfer",
    RiskCategory.SECURITY_PRACTICES: "Security Practices",
    RiskCategory.AI_CONCERNS: "AI-Specific Concerns",
    RiskCategory.COMMUNICATION: "Communication preferences",
    RiskCategory.MISCELLANEOUS_RISKS: "Miscellaneous risky practices",
}

ClauseRiskLevel = Literal["low", "medium", "high", "critical"]


class AnalysisSource(str, Enum):
    """Where an analysis result came from"""
    CACHED = "cached"
    FRESH = "fresh"
    FALLBACK = "fallback"


class DetectedClause(BaseModel):
    """A risky clause reported by the AI analyzer"""
    clause_text: str = Field(..., min_length=1, description="Exact quote from the document")
    section: Optional[str] = Field(None, description="Section name the clause appears in")
    position: Optional[StrictInt] = Field(None, description="Line number or offset in the document")
    risk_level: ClauseRiskLevel
    risk_category: str = Field(..., min_length=1)
    explanation: str = ""
    user_impact: str = ""
    mitigation_advice: str = ""


class AIAnalysisResponse(BaseModel):
    """Response contract of the AI analyzer. Any violation triggers the fallback scorer."""
    overall_risk_score: int = Field(..., ge=0, le=100, strict=True)
    confidence_score: float = Field(..., ge=0.0, le=1.0, strict=True)
    detected_clauses: List[DetectedClause]
    risk_breakdown: Dict[str, StrictInt]
    recommendation_summary: str

    @field_validator('risk_breakdown')
    @classmethod
    def validate_breakdown(cls, v):
        unknown = set(v) - set(RISK_CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown risk categories: {sorted(unknown)}")
        missing = set(RISK_CATEGORIES) - set(v)
        if missing:
            raise ValueError(f"Missing risk categories: {sorted(missing)}")
        for category, score in v.items():
            if not 0 <= score <= 100:
                raise ValueError(f"Score for {category} out of range: {score}")
        return v


class AnalyzerOutput(BaseModel):
    """Raw analyzer payload plus call telemetry; validated by the orchestrator"""
    payload: Dict[str, Any]
    model: str
    tokens_used: int = 0


class AnalysisResult(BaseModel):
    """Analysis handed to callers, whether cached, fresh or fallback"""
    source: AnalysisSource
    content_hash: str
    content_type: ContentType
    site_id: Optional[str] = None
    cache_id: Optional[str] = None

    overall_risk_score: int
    risk_level: str
    risk_color: str
    risk_breakdown: Dict[str, int] = Field(default_factory=dict)
    detected_clauses: List[Dict[str, Any]] = Field(default_factory=list)
    risk_explanations: Dict[str, List[str]] = Field(default_factory=dict)
    recommendation_summary: Optional[str] = None

    confidence_score: float
    ai_model_version: str
    analysis_version: Optional[str] = None
    tokens_used: Optional[int] = None
    analysis_duration_ms: Optional[int] = None
    analyzed_at: datetime

    access_count: int = 0
    is_stale: bool = False

    @classmethod
    def from_cache(cls, row: Any, source: AnalysisSource) -> "AnalysisResult":
        """Build a result from a TosAnalysisCache row."""
        score = row.overall_risk_score or 0
        level, color = classify(score)
        return cls(
            source=source,
            content_hash=row.content_hash,
            content_type=row.content_type,
            site_id=row.site_id,
            cache_id=row.id,
            overall_risk_score=score,
            risk_level=level,
            risk_color=color,
            risk_breakdown=row.risk_analysis or {},
            detected_clauses=row.detected_clauses or [],
            risk_explanations=row.risk_explanations or {},
            recommendation_summary=row.recommendation_summary,
            confidence_score=row.confidence_score if row.confidence_score is not None else 0.0,
            ai_model_version=row.ai_model_used or "unknown",
            analysis_version=row.analysis_version,
            tokens_used=row.tokens_used,
            analysis_duration_ms=row.analysis_duration_ms,
            analyzed_at=row.analyzed_at,
            access_count=row.access_count or 0,
            is_stale=bool(row.is_stale),
        )

    def category_score(self, category: RiskCategory) -> int:
        return self.risk_breakdown.get(category.value, 0)


class QualityMetrics(BaseModel):
    """Raw measurements behind a quality score"""
    length: int
    word_count: int
    sentence_count: int
    paragraph_count: int
    legal_keyword_density: float
    readability_score: float
    has_structure: bool
    language: str


class QualityReport(BaseModel):
    """Content quality verdict"""
    metrics: QualityMetrics
    quality_score: float
    is_analyzable: bool
    recommendations: List[str]


class AnalyzeRequest(BaseModel):
    """Request body for document analysis"""
    content: str = Field(..., min_length=1, description="Extracted document text")
    content_type: ContentType = ContentType.TERMS_OF_SERVICE
    site_id: Optional[str] = Field(None, description="Site the document belongs to")


class AnalyzeForUserRequest(AnalyzeRequest):
    """Request body for personalized analysis"""
    user_id: str = Field(..., min_length=1)
    site_id: str = Field(..., min_length=1)
