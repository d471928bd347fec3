"""Tests for clause to preference matching rules."""
from app.schemas.personalization import WarningSeverity
from app.schemas.preferences import PreferenceSet
from app.services.preference_rules import (
    DEFAULT_WARNING,
    evaluate_clause,
    severity_for,
    warning_for,
)


def clause(text, category):
    return {"clause_text": text, "risk_category": category}


def test_matching_rule_reports_disallowed_flag():
    prefs = PreferenceSet.defaults()
    assert evaluate_clause(clause("We SELL your data", "data_sharing"), prefs) == ["allow_data_selling"]


def test_allowed_practice_is_not_a_violation():
    prefs = PreferenceSet({"allow_data_selling": True})
    assert evaluate_clause(clause("We sell your data", "data_sharing"), prefs) == []


def test_keyword_must_match_within_category():
    prefs = PreferenceSet.defaults()
    # "sell" is a data sharing keyword, not a data collection one
    assert evaluate_clause(clause("We sell your data", "data_collection"), prefs) == []


def test_unknown_category_yields_nothing():
    prefs = PreferenceSet.defaults()
    assert evaluate_clause(clause("We sell your data", "astrology"), prefs) == []
    assert evaluate_clause({"clause_text": "We sell your data"}, prefs) == []


def test_multi_flag_rule_reports_all_flags():
    prefs = PreferenceSet.defaults()
    violations = evaluate_clause(clause("Data is stored unencrypted", "security_practices"), prefs)
    assert violations == ["allow_weak_encryption_at_rest", "allow_no_encryption_in_transit"]


def test_multi_flag_rule_reports_all_flags_when_only_one_is_disallowed():
    prefs = PreferenceSet({"allow_weak_encryption_at_rest": True})
    violations = evaluate_clause(clause("Data is stored unencrypted", "security_practices"), prefs)
    assert violations == ["allow_weak_encryption_at_rest", "allow_no_encryption_in_transit"]


def test_rules_fire_in_order():
    prefs = PreferenceSet.defaults()
    text = "We sell data to partners for marketing"
    assert evaluate_clause(clause(text, "data_sharing"), prefs) == [
        "allow_data_selling",
        "allow_third_party_sharing",
        "allow_marketing_data_sharing",
    ]


def test_warning_text_and_severity():
    assert warning_for("allow_data_selling") == "This site may sell your personal data to third parties"
    assert severity_for("allow_data_selling") == WarningSeverity.CRITICAL
    assert severity_for("allow_camera_access") == WarningSeverity.HIGH
    assert severity_for("allow_robocalls") == WarningSeverity.LOW
    assert warning_for("allow_weak_encryption_at_rest") == DEFAULT_WARNING
    assert warning_for("not_a_flag") == DEFAULT_WARNING
