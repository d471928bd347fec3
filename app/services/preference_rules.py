"""
Mapping from detected clauses to the user preferences they conflict with.

Each risk category has a list of rules. A rule fires when the lowercased
clause text contains any of its keywords and the user disallows at least
one of its flags; it then reports every flag it lists.
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

from app.schemas.analysis import RiskCategory
from app.schemas.personalization import WarningSeverity
from app.schemas.preferences import PreferenceFlag, PreferenceSet

F = PreferenceFlag


@dataclass(frozen=True)
class PreferenceRule:
    keywords: Tuple[str, ...]
    flags: Tuple[PreferenceFlag, ...]

    def matches(self, clause_text: str) -> bool:
        return any(keyword in clause_text for keyword in self.keywords)

    def violations(self, clause_text: str, preferences: PreferenceSet) -> List[str]:
        if not self.matches(clause_text):
            return []
        if all(preferences.allows(flag) for flag in self.flags):
            return []
        return [flag.value for flag in self.flags]


def _rule(keywords, *flags) -> PreferenceRule:
    return PreferenceRule(keywords=tuple(keywords), flags=flags)


PREFERENCE_RULES: Dict[RiskCategory, List[PreferenceRule]] = {
    RiskCategory.DATA_SHARING: [
        _rule(["sell", "selling", "monetize"], F.ALLOW_DATA_SELLING),
        _rule(["third party", "partners", "affiliates"], F.ALLOW_THIRD_PARTY_SHARING),
        _rule(["marketing", "advertising"], F.ALLOW_MARKETING_DATA_SHARING),
    ],
    RiskCategory.DATA_COLLECTION: [
        _rule(["location", "gps", "precise location"], F.ALLOW_PRECISE_LOCATION),
        _rule(["contacts", "address book"], F.ALLOW_CONTACTS_ACCESS),
        _rule(["camera", "photos", "images"], F.ALLOW_CAMERA_ACCESS),
        _rule(["microphone", "audio", "voice"], F.ALLOW_MICROPHONE_ACCESS),
        _rule(["clipboard", "copy", "paste"], F.ALLOW_CLIPBOARD_READING),
        _rule(["keyboard", "keylogging", "input"], F.ALLOW_KEYBOARD_INPUT_READING),
    ],
    RiskCategory.PERSONALIZATION_TRACKING: [
        _rule(["cross-site", "cross site", "tracking across"], F.ALLOW_CROSS_SITE_TRACKING),
        _rule(["behavioral tracking", "behavior tracking", "ai training"], F.ALLOW_BEHAVIORAL_TRACKING_AI),
    ],
    RiskCategory.DATA_RETENTION: [
        _rule(["indefinitely", "indefinite", "permanent"], F.ALLOW_INDEFINITE_RETENTION),
        _rule(["after deletion", "after account deletion"], F.ALLOW_RETENTION_AFTER_DELETION),
    ],
    RiskCategory.EMPLOYEE_ACCESS: [
        _rule(["employee", "staff", "personnel"], F.ALLOW_EMPLOYEE_DATA_ACCESS),
        _rule(["ai training", "machine learning", "model training"], F.ALLOW_AI_TRAINING_ON_DATA),
    ],
    RiskCategory.CROSS_BORDER_TRANSFER: [
        _rule(["international", "overseas", "other countries"], F.ALLOW_INTERNATIONAL_TRANSFER),
    ],
    RiskCategory.SECURITY_PRACTICES: [
        _rule(
            ["weak encryption", "no encryption", "unencrypted"],
            F.ALLOW_WEAK_ENCRYPTION_AT_REST,
            F.ALLOW_NO_ENCRYPTION_IN_TRANSIT,
        ),
    ],
    RiskCategory.AI_CONCERNS: [
        _rule(["ai analysis", "conversation analysis"], F.ALLOW_AI_CONVERSATION_ANALYSIS),
    ],
    RiskCategory.COMMUNICATION: [
        _rule(["robocall", "automated call", "auto-dial"], F.ALLOW_ROBOCALLS),
        _rule(["sms", "text message", "marketing text"], F.ALLOW_SMS_MARKETING),
    ],
}

PREFERENCE_WARNINGS: Dict[PreferenceFlag, str] = {
    F.ALLOW_DATA_SELLING: "This site may sell your personal data to third parties",
    F.ALLOW_THIRD_PARTY_SHARING: "Your data may be shared with unknown third parties",
    F.ALLOW_MARKETING_DATA_SHARING: "Your information may be used for targeted marketing",
    F.ALLOW_PRECISE_LOCATION: "This site may track your exact location",
    F.ALLOW_CONTACTS_ACCESS: "This site may access your contact list",
    F.ALLOW_CAMERA_ACCESS: "This site may access your camera",
    F.ALLOW_MICROPHONE_ACCESS: "This site may access your microphone",
    F.ALLOW_CLIPBOARD_READING: "This site may read your clipboard data",
    F.ALLOW_KEYBOARD_INPUT_READING: "This site may log your keyboard inputs",
    F.ALLOW_CROSS_SITE_TRACKING: "This site may track you across other websites",
    F.ALLOW_INDEFINITE_RETENTION: "Your data may be kept indefinitely",
    F.ALLOW_RETENTION_AFTER_DELETION: "Your data may be kept even after account deletion",
    F.ALLOW_EMPLOYEE_DATA_ACCESS: "Employees may access your private data",
    F.ALLOW_AI_TRAINING_ON_DATA: "Your data may be used to train AI models",
    F.ALLOW_INTERNATIONAL_TRANSFER: "Your data may be transferred to other countries",
    F.ALLOW_ROBOCALLS: "You may receive automated marketing calls",
    F.ALLOW_SMS_MARKETING: "You may receive marketing text messages",
}
DEFAULT_WARNING = "This site has practices that conflict with your privacy preferences"

PREFERENCE_SEVERITIES: Dict[PreferenceFlag, WarningSeverity] = {
    F.ALLOW_DATA_SELLING: WarningSeverity.CRITICAL,
    F.ALLOW_KEYBOARD_INPUT_READING: WarningSeverity.CRITICAL,
    F.ALLOW_CLIPBOARD_READING: WarningSeverity.CRITICAL,
    F.ALLOW_THIRD_PARTY_SHARING: WarningSeverity.HIGH,
    F.ALLOW_PRECISE_LOCATION: WarningSeverity.HIGH,
    F.ALLOW_CAMERA_ACCESS: WarningSeverity.HIGH,
    F.ALLOW_MICROPHONE_ACCESS: WarningSeverity.HIGH,
    F.ALLOW_MARKETING_DATA_SHARING: WarningSeverity.MEDIUM,
    F.ALLOW_CROSS_SITE_TRACKING: WarningSeverity.MEDIUM,
    F.ALLOW_INDEFINITE_RETENTION: WarningSeverity.MEDIUM,
}


def warning_for(preference: str) -> str:
    try:
        return PREFERENCE_WARNINGS.get(PreferenceFlag(preference), DEFAULT_WARNING)
    except ValueError:
        return DEFAULT_WARNING


def severity_for(preference: str) -> WarningSeverity:
    try:
        return PREFERENCE_SEVERITIES.get(PreferenceFlag(preference), WarningSeverity.LOW)
    except ValueError:
        return WarningSeverity.LOW


def evaluate_clause(clause: Dict, preferences: PreferenceSet) -> List[str]:
    """Preference names a single detected clause violates, in rule order"""
    try:
        category = RiskCategory(clause.get("risk_category"))
    except ValueError:
        return []

    clause_text = (clause.get("clause_text") or "").lower()
    violations = []
    for rule in PREFERENCE_RULES.get(category, []):
        violations.extend(rule.violations(clause_text, preferences))
    return violations
