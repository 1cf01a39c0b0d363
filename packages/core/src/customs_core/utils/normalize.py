"""Text canonicalization shared by every text-matching component.

The matcher, the subvaluation detector and the band policy must tokenize
identically, so they all import from here.
"""

from __future__ import annotations

import re
import unicodedata

from rapidfuzz.distance import Levenshtein

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 2


def normalize_text(text: str | None) -> str:
    if not text:
        return ""
    lowered = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(char for char in lowered if not unicodedata.combining(char))
    cleaned = _NON_ALNUM.sub(" ", stripped)
    return _WHITESPACE.sub(" ", cleaned).strip()


def tokenize(text: str | None) -> list[str]:
    return [token for token in normalize_text(text).split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def string_similarity(left: str | None, right: str | None) -> float:
    """Whole-string similarity in [0, 1] over normalized text.

    Identical strings score 1, containment in either direction scores 0.95,
    anything else falls back to normalized edit distance.
    """
    a = normalize_text(left)
    b = normalize_text(right)
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.95
    max_length = max(len(a), len(b))
    if max_length == 0:
        return 1.0
    return max(0.0, 1.0 - Levenshtein.distance(a, b) / max_length)
