"""
Rule-based risk scoring used when the AI analysis is unavailable.
Results are low-confidence and never stored in the analysis cache.
"""

from typing import List, Optional, Tuple, Union

from app.db.base import utcnow
from app.schemas.analysis import AnalysisResult, AnalysisSource, ContentType
from app.utils.risk_levels import classify

FALLBACK_MODEL_VERSION = "fallback_v1.0"
FALLBACK_CONFIDENCE = 0.5
FALLBACK_SUMMARY = "Basic rule-based analysis - consider manual review"

RISK_INDICATORS: List[Tuple[str, int]] = [
    ("sell", 20),
    ("third party", 15),
    ("marketing", 10),
    ("track", 15),
    ("cookies", 5),
    ("location", 15),
    ("camera", 20),
    ("microphone", 20),
    ("contacts", 15),
]


def score_content(content: str) -> int:
    """Sum of the weights of indicators found in the text, capped at 100"""
    content_lower = content.lower()
    total = sum(weight for keyword, weight in RISK_INDICATORS if keyword in content_lower)
    return min(100, total)


def build_fallback_result(
    content: str,
    content_type: Union[ContentType, str],
    content_hash: str,
    site_id: Optional[str] = None,
    duration_ms: Optional[int] = None
) -> AnalysisResult:
    score = score_content(content)
    level, color = classify(score)
    return AnalysisResult(
        source=AnalysisSource.FALLBACK,
        content_hash=content_hash,
        content_type=content_type,
        site_id=site_id,
        overall_risk_score=score,
        risk_level=level,
        risk_color=color,
        recommendation_summary=FALLBACK_SUMMARY,
        confidence_score=FALLBACK_CONFIDENCE,
        ai_model_version=FALLBACK_MODEL_VERSION,
        tokens_used=0,
        analysis_duration_ms=duration_ms,
        analyzed_at=utcnow(),
    )
