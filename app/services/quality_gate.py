"""
Quality Gate
Scores extracted document text before it is sent for AI analysis.
"""

import logging
import re
from typing import List

from app.schemas.analysis import QualityMetrics, QualityReport

logger = logging.getLogger(__name__)

ANALYZABLE_THRESHOLD = 0.6

LEGAL_KEYWORDS = [
    "agreement", "liability", "warranty", "terms", "conditions", "privacy",
    "data", "personal", "information", "collect", "share", "cookies",
    "tracking", "consent", "rights", "policy", "legal", "copyright",
    "intellectual property", "dispute", "termination", "modification",
]

# Numbered sections and ALL CAPS headings only count in upper case.
STRUCTURE_PATTERNS = [
    re.compile(r"\d+\.\s*[A-Z]"),
    re.compile(r"^[A-Z][A-Z \t&]{2,}$", re.MULTILINE),
    re.compile(r"whereas", re.IGNORECASE),
    re.compile(r"section\s+\d+", re.IGNORECASE),
    re.compile(r"article\s+\d+", re.IGNORECASE),
]
MIN_STRUCTURE_INDICATORS = 2

LANGUAGE_SAMPLE_WORDS = 100
ENGLISH_INDICATORS = {"the", "and", "of", "to", "a", "in", "is", "you", "that", "it"}
SPANISH_INDICATORS = {"el", "de", "que", "y", "la", "en", "un", "es", "se", "no"}
FRENCH_INDICATORS = {"le", "de", "et", "à", "un", "il", "être", "en", "avoir"}

SENTENCE_SPLIT = re.compile(r"[.!?]+")
PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def count_words(text: str) -> int:
    return len(text.split())


def count_sentences(text: str) -> int:
    return len(SENTENCE_SPLIT.split(text))


def count_paragraphs(text: str) -> int:
    return len(PARAGRAPH_SPLIT.split(text))


def legal_keyword_density(text: str) -> float:
    """Distinct legal keywords present, per hundred words"""
    word_count = count_words(text)
    if word_count == 0:
        return 0.0
    text_lower = text.lower()
    matches = sum(1 for keyword in LEGAL_KEYWORDS if keyword in text_lower)
    return matches / word_count * 100


def readability_score(text: str) -> float:
    """Higher for shorter sentences and shorter words, clamped to 0-100"""
    words = text.split()
    sentences = SENTENCE_SPLIT.split(text)
    if not words or not sentences:
        return 0.0
    avg_words_per_sentence = len(words) / len(sentences)
    avg_chars_per_word = len(text) / len(words)
    readability = 100 - (avg_words_per_sentence * 2) - (avg_chars_per_word * 5)
    return max(0.0, min(100.0, readability))


def has_legal_structure(text: str) -> bool:
    indicators = sum(1 for pattern in STRUCTURE_PATTERNS if pattern.search(text))
    return indicators >= MIN_STRUCTURE_INDICATORS


def detect_language(text: str) -> str:
    """Guess en / es / fr from common words at the start of the text"""
    words = text.lower().split()[:LANGUAGE_SAMPLE_WORDS]
    english = sum(1 for word in words if word in ENGLISH_INDICATORS)
    spanish = sum(1 for word in words if word in SPANISH_INDICATORS)
    french = sum(1 for word in words if word in FRENCH_INDICATORS)

    if english >= spanish and english >= french:
        return "en"
    if spanish >= french:
        return "es"
    if french > 0:
        return "fr"
    return "unknown"


def _length_component(word_count: int) -> float:
    if word_count < 100:
        return 0.1
    if word_count < 500:
        return 0.4
    if word_count < 2000:
        return 0.8
    if word_count < 10000:
        return 1.0
    if word_count < 20000:
        return 0.9
    return 0.7


def _density_component(density: float) -> float:
    if density < 0.5:
        return 0.2
    if density < 1.0:
        return 0.5
    if density < 3.0:
        return 1.0
    if density < 5.0:
        return 0.9
    return 0.7


def quality_score(metrics: QualityMetrics) -> float:
    """Mean of the length, density, structure and language components"""
    components = [
        _length_component(metrics.word_count),
        _density_component(metrics.legal_keyword_density),
        1.0 if metrics.has_structure else 0.3,
        1.0 if metrics.language == "en" else 0.8,
    ]
    return sum(components) / len(components)


def recommendations_for(metrics: QualityMetrics) -> List[str]:
    recommendations = []
    if metrics.word_count < 500:
        recommendations.append("Content appears too short for comprehensive analysis")
    if metrics.legal_keyword_density < 1.0:
        recommendations.append("Low legal keyword density - may not be a legal document")
    if not metrics.has_structure:
        recommendations.append("Document lacks clear legal structure")
    if metrics.language != "en":
        recommendations.append("Non-English content may result in lower analysis accuracy")
    return recommendations or ["Content appears suitable for analysis"]


class QualityGate:
    """Decides whether a document is worth an AI analysis"""

    def __init__(self, threshold: float = ANALYZABLE_THRESHOLD):
        self.threshold = threshold

    def analyze(self, content: str) -> QualityReport:
        metrics = QualityMetrics(
            length=len(content),
            word_count=count_words(content),
            sentence_count=count_sentences(content),
            paragraph_count=count_paragraphs(content),
            legal_keyword_density=legal_keyword_density(content),
            readability_score=readability_score(content),
            has_structure=has_legal_structure(content),
            language=detect_language(content),
        )
        score = quality_score(metrics)
        report = QualityReport(
            metrics=metrics,
            quality_score=score,
            is_analyzable=score > self.threshold,
            recommendations=recommendations_for(metrics),
        )
        logger.debug(
            f"Quality score {score:.2f} ({metrics.word_count} words, "
            f"density {metrics.legal_keyword_density:.2f}, language {metrics.language})"
        )
        return report
