"""
Risk level classification shared by every component that produces a score.
"""

from typing import Any, Tuple

UNKNOWN_LEVEL = "unknown"
UNKNOWN_COLOR = "#6b7280"

# (low, high, level, color), bounds inclusive
RISK_BANDS = (
    (0, 10, "minimal", "#22c55e"),
    (11, 25, "low", "#84cc16"),
    (26, 40, "moderate", "#eab308"),
    (41, 60, "elevated", "#f97316"),
    (61, 80, "high", "#ef4444"),
    (81, 100, "extreme", "#7f1d1d"),
)

RISK_COLORS = {level: color for _, _, level, color in RISK_BANDS}


def calculate_risk_level(score: Any) -> str:
    """Map a 0-100 integer score to its named risk level."""
    # bool is an int subclass but never a score
    if not isinstance(score, int) or isinstance(score, bool):
        return UNKNOWN_LEVEL
    for low, high, level, _ in RISK_BANDS:
        if low <= score <= high:
            return level
    return UNKNOWN_LEVEL


def get_risk_color(risk_level: str) -> str:
    return RISK_COLORS.get(risk_level, UNKNOWN_COLOR)


def classify(score: Any) -> Tuple[str, str]:
    """Return (risk_level, risk_color) for a score."""
    level = calculate_risk_level(score)
    return level, get_risk_color(level)
