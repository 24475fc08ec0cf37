"""
utils/validation_utils.py

Purpose: Input normalization helpers

- Trims raw message bodies
- Classifies input for the transition table
- Normalizes command keywords and identities
"""

from typing import Optional

INPUT_EMPTY = "empty"
INPUT_TEXT = "text"


def normalize_input(text: Optional[str]) -> str:
    """
    Trims a raw message body. None becomes the empty string.

    Args:
        text: Raw inbound text

    Returns:
        Trimmed text
    """
    if not text:
        return ""
    return text.strip()


def classify_input(text: str) -> str:
    """
    Maps normalized input to its input class.

    Returns:
        INPUT_EMPTY for blank input, INPUT_TEXT otherwise
    """
    return INPUT_TEXT if text else INPUT_EMPTY


def normalize_command(text: str) -> str:
    """Case-insensitive command keyword."""
    return normalize_input(text).lower()


def validate_identity(identity: Optional[str]) -> bool:
    """
    Checks that a messaging identity is usable as a store key.

    Identities are opaque, so only emptiness is rejected.
    """
    return bool(identity and identity.strip())
