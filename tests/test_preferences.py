"""Tests for user preference sets."""
import pytest

from app.schemas.errors import PreferenceError
from app.schemas.preferences import (
    PREFERENCE_CATEGORIES,
    PREFERENCE_DEFAULTS,
    PreferenceFlag,
    PreferenceSet,
)


def test_every_flag_has_a_default_and_a_category():
    assert set(PREFERENCE_DEFAULTS) == set(PreferenceFlag)
    categorized = [flag for flags in PREFERENCE_CATEGORIES.values() for flag in flags]
    assert sorted(categorized) == sorted(PreferenceFlag)


def test_defaults_are_protective():
    prefs = PreferenceSet.defaults()
    assert prefs["allow_data_selling"] is False
    assert prefs[PreferenceFlag.ALLOW_PRECISE_LOCATION] is False
    assert prefs["allow_usage_analytics"] is True
    assert len(prefs) == len(PreferenceFlag)


def test_missing_flags_take_defaults():
    prefs = PreferenceSet({"allow_data_selling": True})
    assert prefs["allow_data_selling"] is True
    assert prefs["allow_camera_access"] is False


def test_unknown_flag_is_rejected():
    with pytest.raises(PreferenceError):
        PreferenceSet({"allow_everything": True})


def test_non_boolean_value_is_rejected():
    with pytest.raises(PreferenceError):
        PreferenceSet({"allow_data_selling": "yes"})


def test_lookup_of_unknown_key_raises_key_error():
    prefs = PreferenceSet.defaults()
    with pytest.raises(KeyError):
        prefs["allow_everything"]
    assert prefs.get("allow_everything") is None


def test_updated_returns_new_set():
    prefs = PreferenceSet.defaults(user_id="user-1")
    changed = prefs.updated({"allow_data_selling": True})

    assert prefs["allow_data_selling"] is False
    assert changed["allow_data_selling"] is True
    assert changed.user_id == "user-1"
    assert changed != prefs


def test_updated_validates_changes():
    with pytest.raises(PreferenceError):
        PreferenceSet.defaults().updated({"allow_data_selling": 1})


def test_restrictive_lists_disallowed_flags():
    restrictive = PreferenceSet.defaults().restrictive()
    assert "allow_data_selling" in restrictive
    assert "allow_usage_analytics" not in restrictive


def test_to_dict_round_trips():
    prefs = PreferenceSet({"allow_robocalls": True})
    assert PreferenceSet(prefs.to_dict()) == prefs
