"""
Checksum utility functions
"""

import hashlib


def calculate_checksum(text: str) -> str:
    """
    Calculate SHA256 checksum of text.

    The exact UTF-8 bytes are hashed, no whitespace or case normalization
    is applied. Content type is not part of the digest; callers pair the
    checksum with it to form the cache key.

    Args:
        text: Text to hash

    Returns:
        Hexadecimal SHA256 hash
    """
    if not isinstance(text, str):
        raise ValueError(f"Unsupported input type for checksum: {type(text)}")
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def calculate_clause_checksum(clause_text: str) -> str:
    """Fingerprint of a single clause, used as the clause library key."""
    return calculate_checksum(clause_text)
