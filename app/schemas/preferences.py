"""
User privacy preference schemas

A preference set is a mapping from a fixed flag name to a boolean. Each
flag is "allow_<practice>"; False means the user disallows the practice.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional

from pydantic import BaseModel, Field

from app.schemas.errors import PreferenceError


class PreferenceFlag(str, Enum):
    """Every preference a user can toggle"""
    # 1. Data Sharing & Selling
    ALLOW_DATA_SELLING = "allow_data_selling"
    ALLOW_THIRD_PARTY_SHARING = "allow_third_party_sharing"
    ALLOW_MARKETING_DATA_SHARING = "allow_marketing_data_sharing"
    ALLOW_ANALYTICS_DATA_SHARING = "allow_analytics_data_sharing"
    ALLOW_ANONYMIZED_DATA_SELLING = "allow_anonymized_data_selling"
    ALLOW_AFFILIATE_SHARING = "allow_affiliate_sharing"
    ALLOW_LAW_ENFORCEMENT_SHARING_NO_WARRANT = "allow_law_enforcement_sharing_no_warrant"

    # 2. Data Collection
    ALLOW_USAGE_ANALYTICS = "allow_usage_analytics"
    ALLOW_PRECISE_LOCATION = "allow_precise_location"
    ALLOW_APPROXIMATE_LOCATION = "allow_approximate_location"
    ALLOW_CONTACTS_ACCESS = "allow_contacts_access"
    ALLOW_CALENDAR_ACCESS = "allow_calendar_access"
    ALLOW_CAMERA_ACCESS = "allow_camera_access"
    ALLOW_MICROPHONE_ACCESS = "allow_microphone_access"
    ALLOW_PHOTOS_ACCESS = "allow_photos_access"
    ALLOW_CLIPBOARD_READING = "allow_clipboard_reading"
    ALLOW_KEYBOARD_INPUT_READING = "allow_keyboard_input_reading"

    # 3. Personalization & Tracking
    ALLOW_PERSONALIZED_ADS = "allow_personalized_ads"
    ALLOW_CROSS_SITE_TRACKING = "allow_cross_site_tracking"
    ALLOW_PROFILING = "allow_profiling"
    ALLOW_BEHAVIORAL_TRACKING_AI = "allow_behavioral_tracking_ai"

    # 4. Data Retention & Deletion
    ALLOW_INDEFINITE_RETENTION = "allow_indefinite_retention"
    ALLOW_RETENTION_AFTER_DELETION = "allow_retention_after_deletion"
    ALLOW_DATA_USE_AFTER_DELETION = "allow_data_use_after_deletion"

    # 5. Employee Access & Internal Use
    ALLOW_EMPLOYEE_DATA_ACCESS = "allow_employee_data_access"
    ALLOW_AI_TRAINING_ON_DATA = "allow_ai_training_on_data"
    ALLOW_SUPPORT_MESSAGE_READING = "allow_support_message_reading"
    ALLOW_INTERNAL_FILE_REVIEW = "allow_internal_file_review"

    # 6. Cross-Border Data Transfer
    ALLOW_INTERNATIONAL_TRANSFER = "allow_international_transfer"
    ALLOW_LOW_PROTECTION_COUNTRIES = "allow_low_protection_countries"

    # 7. Security Practices
    ALLOW_WEAK_ENCRYPTION_AT_REST = "allow_weak_encryption_at_rest"
    ALLOW_NO_ENCRYPTION_IN_TRANSIT = "allow_no_encryption_in_transit"
    ALLOW_PASSWORD_HASH_SHARING = "allow_password_hash_sharing"

    # 8. AI-Specific Concerns
    ALLOW_AI_CONVERSATION_ANALYSIS = "allow_ai_conversation_analysis"
    ALLOW_AI_PUBLIC_DATA_GENERATION = "allow_ai_public_data_generation"
    ALLOW_SYNTHETIC_DATA_GENERATION = "allow_synthetic_data_generation"

    # 9. Communication & Contact
    ALLOW_MARKETING_EMAILS = "allow_marketing_emails"
    ALLOW_SMS_MARKETING = "allow_sms_marketing"
    ALLOW_ROBOCALLS = "allow_robocalls"

    # 10. Miscellaneous
    ALLOW_BACKGROUND_DATA_COLLECTION = "allow_background_data_collection"
    ALLOW_BACKGROUND_LOCATION_TRACKING = "allow_background_location_tracking"
    ALLOW_ADDITIONAL_SOFTWARE_INSTALL = "allow_additional_software_install"
    ALLOW_AUTO_SUBSCRIPTION_RENEWAL = "allow_auto_subscription_renewal"
    ALLOW_ARBITRATION_CLAUSE = "allow_arbitration_clause"
    ALLOW_CLASS_ACTION_WAIVER = "allow_class_action_waiver"

    # Keyboard & Clipboard specific
    ALLOW_EXTERNAL_KEYBOARD_READING = "allow_external_keyboard_reading"
    ALLOW_CLIPBOARD_MONITORING = "allow_clipboard_monitoring"


F = PreferenceFlag

# Flags that default to allowed; every other flag defaults to disallowed.
_PERMISSIVE_BY_DEFAULT = {
    F.ALLOW_ANALYTICS_DATA_SHARING,
    F.ALLOW_ANONYMIZED_DATA_SELLING,
    F.ALLOW_USAGE_ANALYTICS,
    F.ALLOW_PERSONALIZED_ADS,
    F.ALLOW_PROFILING,
    F.ALLOW_SUPPORT_MESSAGE_READING,
    F.ALLOW_INTERNATIONAL_TRANSFER,
    F.ALLOW_MARKETING_EMAILS,
    F.ALLOW_AUTO_SUBSCRIPTION_RENEWAL,
}

PREFERENCE_DEFAULTS: Dict[PreferenceFlag, bool] = {
    flag: flag in _PERMISSIVE_BY_DEFAULT for flag in PreferenceFlag
}

PREFERENCE_CATEGORIES: Dict[str, List[PreferenceFlag]] = {
    "data_sharing": [
        F.ALLOW_DATA_SELLING, F.ALLOW_THIRD_PARTY_SHARING, F.ALLOW_MARKETING_DATA_SHARING,
        F.ALLOW_ANALYTICS_DATA_SHARING, F.ALLOW_ANONYMIZED_DATA_SELLING, F.ALLOW_AFFILIATE_SHARING,
        F.ALLOW_LAW_ENFORCEMENT_SHARING_NO_WARRANT,
    ],
    "data_collection": [
        F.ALLOW_USAGE_ANALYTICS, F.ALLOW_PRECISE_LOCATION, F.ALLOW_APPROXIMATE_LOCATION,
        F.ALLOW_CONTACTS_ACCESS, F.ALLOW_CALENDAR_ACCESS, F.ALLOW_CAMERA_ACCESS,
        F.ALLOW_MICROPHONE_ACCESS, F.ALLOW_PHOTOS_ACCESS, F.ALLOW_CLIPBOARD_READING,
        F.ALLOW_KEYBOARD_INPUT_READING,
    ],
    "personalization_tracking": [
        F.ALLOW_PERSONALIZED_ADS, F.ALLOW_CROSS_SITE_TRACKING, F.ALLOW_PROFILING,
        F.ALLOW_BEHAVIORAL_TRACKING_AI,
    ],
    "data_retention": [
        F.ALLOW_INDEFINITE_RETENTION, F.ALLOW_RETENTION_AFTER_DELETION, F.ALLOW_DATA_USE_AFTER_DELETION,
    ],
    "employee_access": [
        F.ALLOW_EMPLOYEE_DATA_ACCESS, F.ALLOW_AI_TRAINING_ON_DATA, F.ALLOW_SUPPORT_MESSAGE_READING,
        F.ALLOW_INTERNAL_FILE_REVIEW,
    ],
    "cross_border_transfer": [
        F.ALLOW_INTERNATIONAL_TRANSFER, F.ALLOW_LOW_PROTECTION_COUNTRIES,
    ],
    "security_practices": [
        F.ALLOW_WEAK_ENCRYPTION_AT_REST, F.ALLOW_NO_ENCRYPTION_IN_TRANSIT, F.ALLOW_PASSWORD_HASH_SHARING,
    ],
    "ai_concerns": [
        F.ALLOW_AI_CONVERSATION_ANALYSIS, F.ALLOW_AI_PUBLIC_DATA_GENERATION, F.ALLOW_SYNTHETIC_DATA_GENERATION,
    ],
    "communication": [
        F.ALLOW_MARKETING_EMAILS, F.ALLOW_SMS_MARKETING, F.ALLOW_ROBOCALLS,
    ],
    "miscellaneous": [
        F.ALLOW_BACKGROUND_DATA_COLLECTION, F.ALLOW_BACKGROUND_LOCATION_TRACKING,
        F.ALLOW_ADDITIONAL_SOFTWARE_INSTALL, F.ALLOW_AUTO_SUBSCRIPTION_RENEWAL,
        F.ALLOW_ARBITRATION_CLAUSE, F.ALLOW_CLASS_ACTION_WAIVER,
        F.ALLOW_EXTERNAL_KEYBOARD_READING, F.ALLOW_CLIPBOARD_MONITORING,
    ],
}


def _parse_flag(name: Any) -> PreferenceFlag:
    if isinstance(name, PreferenceFlag):
        return name
    try:
        return PreferenceFlag(name)
    except ValueError:
        raise PreferenceError(f"Unknown preference: {name!r}")


def validate_changes(values: Mapping[Any, Any]) -> Dict[PreferenceFlag, bool]:
    """
    Flags and values of a (partial) preference map.

    Raises:
        PreferenceError: On unknown flag names or non-boolean values
    """
    validated: Dict[PreferenceFlag, bool] = {}
    for name, value in values.items():
        flag = _parse_flag(name)
        if not isinstance(value, bool):
            raise PreferenceError(f"Preference {flag.value} must be a boolean, got {value!r}")
        validated[flag] = value
    return validated


class PreferenceSet(Mapping):
    """
    Immutable mapping of every PreferenceFlag to a boolean.

    Flags missing from the input take their per-flag default. Unknown flag
    names and non-boolean values raise PreferenceError.
    """

    def __init__(self, values: Optional[Mapping[Any, Any]] = None, user_id: Optional[str] = None):
        self.user_id = user_id
        flags = dict(PREFERENCE_DEFAULTS)
        flags.update(validate_changes(values or {}))
        self._flags = flags

    @classmethod
    def defaults(cls, user_id: Optional[str] = None) -> "PreferenceSet":
        return cls(None, user_id=user_id)

    def __getitem__(self, key) -> bool:
        try:
            flag = _parse_flag(key)
        except PreferenceError:
            raise KeyError(key)
        return self._flags[flag]

    def __iter__(self) -> Iterator[PreferenceFlag]:
        return iter(self._flags)

    def __len__(self) -> int:
        return len(self._flags)

    def __eq__(self, other) -> bool:
        if isinstance(other, PreferenceSet):
            return self._flags == other._flags
        return NotImplemented

    def __hash__(self):
        return hash(frozenset(self._flags.items()))

    def allows(self, flag: PreferenceFlag) -> bool:
        return self[flag]

    def restrictive(self) -> List[str]:
        """Names of every disallowed practice."""
        return [flag.value for flag, allowed in self._flags.items() if not allowed]

    def updated(self, changes: Mapping[Any, Any]) -> "PreferenceSet":
        merged = {flag.value: allowed for flag, allowed in self._flags.items()}
        for name, value in changes.items():
            merged[_parse_flag(name).value] = value
        return PreferenceSet(merged, user_id=self.user_id)

    def to_dict(self) -> Dict[str, bool]:
        return {flag.value: allowed for flag, allowed in self._flags.items()}

    def __repr__(self):
        return f"<PreferenceSet(user_id={self.user_id!r}, restrictive={len(self.restrictive())})>"


class PreferencesResponse(BaseModel):
    """User preferences grouped by category"""
    user_id: str
    preferences: Dict[str, bool]
    categories: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            name: [flag.value for flag in flags] for name, flags in PREFERENCE_CATEGORIES.items()
        }
    )


class PreferencesUpdateRequest(BaseModel):
    """Partial preference update; omitted flags keep their current value"""
    preferences: Dict[str, bool]
