"""Tests for content checksums."""
import pytest

from app.utils.checksum import calculate_checksum, calculate_clause_checksum


def test_checksum_is_sha256_hex():
    digest = calculate_checksum("hello")
    assert digest == "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
    assert len(digest) == 64


def test_checksum_is_whitespace_and_case_sensitive():
    assert calculate_checksum("Terms") != calculate_checksum("terms")
    assert calculate_checksum("Terms") != calculate_checksum("Terms ")


def test_checksum_does_not_normalize_unicode():
    composed = "café"
    decomposed = "café"
    assert calculate_checksum(composed) != calculate_checksum(decomposed)


def test_checksum_rejects_non_text():
    with pytest.raises(ValueError):
        calculate_checksum(b"bytes")


def test_clause_checksum_matches_content_checksum():
    text = "We may sell your data."
    assert calculate_clause_checksum(text) == calculate_checksum(text)
