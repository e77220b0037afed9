"""Text normalization for deterministic intent parsing."""

from __future__ import annotations

import re

_NON_WORD_RE = re.compile(r"[^0-9a-z_\-/.\s]+", flags=re.IGNORECASE)
# Dots survive only as decimal separators ("18.5").
_STRAY_DOT_RE = re.compile(r"(?<!\d)\.|\.(?!\d)")
_MULTISPACE_RE = re.compile(r"\s+")
# "4-day" -> "4 day"; "c/b" stays intact.
_HYPHEN_RE = re.compile(r"(?<=\w)-(?=\w)")


def normalize_text(text: str) -> str:
    """Normalize user text for rules-based parsing.

    Normalization is intentionally conservative:
        - Lowercase.
        - Split hyphenated compounds ("four-day" -> "four day").
        - Replace punctuation with spaces (keeping `/` for "c/b" and decimal points).
        - Collapse whitespace.

    The goal is deterministic tokenization, not linguistic lemmatization.
    """

    value = (text or "").strip().lower()

    # Normalize common unicode dashes to ASCII hyphen.
    value = value.replace("—", "-").replace("–", "-")
    value = value.replace("`", " ").replace('"', " ").replace("'", "")

    value = _HYPHEN_RE.sub(" ", value)
    value = _NON_WORD_RE.sub(" ", value)
    value = _STRAY_DOT_RE.sub(" ", value)
    value = value.replace("-", " ")
    value = _MULTISPACE_RE.sub(" ", value).strip()
    return value
