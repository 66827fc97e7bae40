"""Shared text-processing utilities.

Pure functions with no domain dependencies — safe to import from any
layer (matching, pipeline, CLI).
"""

from __future__ import annotations

import re

from rapidfuzz.distance import Levenshtein

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_LEGAL_SUFFIXES = re.compile(r"\b(inc|ltd|llc|co|corp|corporation|limited|company)\b")

MIN_TOKEN_LEN = 3

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "should", "could", "may", "might", "must", "can", "this",
    "that", "these", "those", "it", "its", "they", "them", "their",
})


def normalize_title(title: str) -> str:
    """Lowercase, strip punctuation, and collapse whitespace.

    >>> normalize_title("  Senior  Software-Engineer (Remote) ")
    'senior softwareengineer remote'
    """
    text = _PUNCTUATION.sub("", title.lower())
    return _WHITESPACE.sub(" ", text).strip()


def normalize_company(company: str) -> str:
    """Like :func:`normalize_title`, with legal suffixes removed.

    >>> normalize_company("Acme Corp, Inc.")
    'acme'
    """
    text = _LEGAL_SUFFIXES.sub("", company.lower())
    text = _PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit-cost insert, delete and substitute."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Normalised edit similarity in [0.0, 1.0]; 1.0 when both are empty."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein(a, b)) / longest


def tokenize(text: str) -> list[str]:
    """Split *text* into lowercase terms for corpus statistics.

    Punctuation becomes whitespace; tokens of two characters or fewer
    and stop words are dropped.  Order and repeats are preserved so
    callers can count term frequency.
    """
    words = _PUNCTUATION.sub(" ", text.lower()).split()
    return [w for w in words if len(w) >= MIN_TOKEN_LEN and w not in STOPWORDS]
