"""Tests for score to risk level classification."""
import pytest

from app.utils.risk_levels import UNKNOWN_COLOR, calculate_risk_level, classify, get_risk_color


@pytest.mark.parametrize(
    "score,level",
    [
        (0, "minimal"), (10, "minimal"),
        (11, "low"), (25, "low"),
        (26, "moderate"), (40, "moderate"),
        (41, "elevated"), (60, "elevated"),
        (61, "high"), (80, "high"),
        (81, "extreme"), (100, "extreme"),
    ],
)
def test_band_boundaries(score, level):
    assert calculate_risk_level(score) == level


@pytest.mark.parametrize("score", [-1, 101, 50.5, "50", None, True])
def test_out_of_range_or_non_integer_is_unknown(score):
    assert calculate_risk_level(score) == "unknown"


def test_classify_returns_level_and_color():
    assert classify(70) == ("high", "#ef4444")
    assert classify(5) == ("minimal", "#22c55e")


def test_unknown_level_gets_grey():
    assert get_risk_color("unknown") == UNKNOWN_COLOR
    assert classify(500) == ("unknown", UNKNOWN_COLOR)
