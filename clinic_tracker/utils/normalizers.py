"""
String normalization utilities for clinical search and matching.

This module provides the comparison keys used by every search, filter and
name-matching routine so that accents and case never affect a match.
"""

import unicodedata
from typing import Iterable, List, Optional


def normalize_string(s: Optional[str]) -> str:
    """
    Normalize a string for accent- and case-insensitive comparison.

    The input is lower-cased, decomposed (NFD) and stripped of combining
    diacritical marks. Whitespace and punctuation are preserved so the
    result can be used for substring containment tests.

    Args:
        s: Input string to normalize

    Returns:
        Normalized comparison key ("" for empty or None input)
    """
    if not s:
        return ""
    decomposed = unicodedata.normalize('NFD', s.lower())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def split_tags(value: Optional[str]) -> List[str]:
    """
    Split a comma-separated tag string into trimmed, non-empty tags.

    Args:
        value: Tag string such as "cardio, pneumo"

    Returns:
        List of tags in their original order
    """
    if not value:
        return []
    return [tag.strip() for tag in value.split(',') if tag.strip()]


def unique_tags(values: Iterable[Optional[str]]) -> List[str]:
    """Collect distinct tags from many tag strings, sorted case-insensitively."""
    seen = set()
    for value in values:
        seen.update(split_tags(value))
    return sorted(seen, key=lambda tag: tag.lower())
