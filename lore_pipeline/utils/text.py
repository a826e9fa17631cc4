"""Text processing utility functions for the import pipeline."""

import re
import unicodedata

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_SLUG_DROP = re.compile(r"[^a-z0-9\s_-]")
_WHITESPACE = re.compile(r"\s+")


def _fold(text: str) -> str:
    """Decompose characters and drop diacritical marks."""
    text = unicodedata.normalize("NFKD", text)
    return "".join(c for c in text if not unicodedata.combining(c))


def normalize_label(raw) -> str:
    """Normalize a place or polity label for matching.

    Applies the following transformations:
    - Unicode NFKD normalization and removal of diacritical marks
    - Lowercasing
    - Every run of characters outside [a-z0-9] becomes a single space
    - Strips surrounding whitespace

    The result is stable under repeated application. Never raises: if unicode
    folding fails the label is lowered without decomposition.

    Args:
        raw: Label to normalize (None is treated as empty)

    Returns:
        Normalized label, or empty string if input is empty/None
    """
    if raw is None:
        return ""
    if not isinstance(raw, str):
        raw = str(raw)

    try:
        folded = _fold(raw).lower()
    except (TypeError, ValueError, UnicodeError):
        folded = raw.lower()

    return _NON_ALNUM.sub(" ", folded).strip()


def slugify_name(raw: str | None) -> str | None:
    """Turn a feature name into the name part of a natural-feature slug.

    Keeps [a-z0-9], underscores and hyphens; whitespace runs become hyphens.

    Args:
        raw: Feature name

    Returns:
        Slug fragment, or None when nothing usable remains
    """
    if not raw or not isinstance(raw, str):
        return None

    try:
        folded = _fold(raw).lower()
    except (TypeError, ValueError, UnicodeError):
        folded = raw.lower()

    folded = _SLUG_DROP.sub("", folded).strip()
    slug = _WHITESPACE.sub("-", folded)
    return slug or None


def display_name_for(canonical_key: str) -> str:
    """Human label for a canonical polity key.

    >>> display_name_for("united kingdom")
    'United Kingdom'
    >>> display_name_for("kingdom of the two sicilies")
    'Kingdom of the Two Sicilies'
    """
    words = canonical_key.split()
    titled = []
    for i, word in enumerate(words):
        if i > 0 and word in _LOWERCASE_WORDS:
            titled.append(word)
        else:
            titled.append(word[:1].upper() + word[1:])
    return " ".join(titled)


_LOWERCASE_WORDS = frozenset({"of", "the", "and", "de", "du", "la"})
