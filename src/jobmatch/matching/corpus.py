"""Batch-wide term rarity (TF-IDF) and the corpus-weighted booster.

:func:`build_corpus` computes document frequency and inverse document
frequency for every term in the deduplicated batch.  The resulting
:class:`CorpusStats` is built **once per run** and handed by reference
to every user's :class:`CorpusBooster` — it is never persisted and never
merged across runs, since term rarity only means something relative to
the batch it was measured on.

The booster rewards postings that mention a user's *rare* keywords:
"mlops" appearing in 2 of 80 postings says more than "software"
appearing in 70 of them.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from jobmatch.text import tokenize

if TYPE_CHECKING:
    from jobmatch.models import JobPosting, UserProfile

logger = logging.getLogger(__name__)

MAX_PROFILE_TECHNOLOGIES = 10

# (minimum average tf-idf, points), checked in order
BOOST_BANDS: tuple[tuple[float, int], ...] = ((5.0, 10), (2.0, 5), (0.5, 2))


@dataclass(frozen=True)
class TermWeight:
    """One row of :meth:`CorpusStats.top_terms`."""

    term: str
    idf: float
    doc_freq: int


@dataclass(frozen=True)
class CorpusStats:
    """Document frequencies and precomputed IDF for one batch."""

    document_count: int
    document_frequency: dict[str, int]
    idf: dict[str, float]

    @property
    def unique_terms(self) -> int:
        return len(self.document_frequency)

    def top_terms(self, limit: int = 20) -> list[TermWeight]:
        """The rarest terms in the batch, highest IDF first."""
        ranked = sorted(self.idf.items(), key=lambda item: item[1], reverse=True)
        return [
            TermWeight(term=term, idf=idf, doc_freq=self.document_frequency[term])
            for term, idf in ranked[:limit]
        ]


def build_corpus(postings: list[JobPosting]) -> CorpusStats | None:
    """Compute term statistics over *postings*.

    Returns ``None`` for an empty batch — there is nothing to measure
    rarity against, and the booster treats missing stats as "no boost".
    """
    if not postings:
        logger.warning("Cannot build TF-IDF corpus from an empty batch — boost disabled")
        return None

    document_frequency: Counter[str] = Counter()
    for posting in postings:
        document_frequency.update(set(tokenize(posting.text)))

    n = len(postings)
    idf = {term: math.log(n / df) for term, df in document_frequency.items()}

    logger.info(
        "TF-IDF corpus built from %d postings: %d unique terms",
        n,
        len(document_frequency),
    )
    return CorpusStats(
        document_count=n,
        document_frequency=dict(document_frequency),
        idf=idf,
    )


def extract_profile_keywords(profile: UserProfile) -> list[str]:
    """Lower-cased keywords a profile cares about, for TF-IDF weighting.

    Target roles contribute their individual words; primary skills and
    the first ten technologies contribute whole.  Duplicates are removed
    while keeping first-seen order.
    """
    keywords: list[str] = []
    for role in profile.target_roles:
        keywords.extend(role.lower().split())
    keywords.extend(skill.lower() for skill in profile.skills_primary)
    keywords.extend(
        tech.lower() for tech in profile.skills_technologies[:MAX_PROFILE_TECHNOLOGIES]
    )
    return list(dict.fromkeys(keywords))


class CorpusBooster:
    """Secondary 0–10 score rewarding rare, profile-specific terms.

    Multi-word keywords ("machine learning") never match a single token
    and therefore contribute nothing; that is the expected behaviour of
    a unigram model, not a bug.
    """

    def __init__(self, stats: CorpusStats | None) -> None:
        self._stats = stats

    def score(self, posting: JobPosting, profile_keywords: list[str]) -> int:
        """Banded TF-IDF score for one posting; 0 when nothing can be said."""
        if self._stats is None:
            return 0

        tf = Counter(tokenize(posting.text))
        total = 0.0
        matched = 0
        for keyword in profile_keywords:
            term = keyword.lower()
            count = tf.get(term, 0)
            if count > 0:
                total += count * self._stats.idf.get(term, 0.0)
                matched += 1

        if matched == 0:
            return 0

        average = total / matched
        for floor, points in BOOST_BANDS:
            if average >= floor:
                return points
        return 0

    def score_all(
        self, postings: list[JobPosting], profile_keywords: list[str]
    ) -> list[JobPosting]:
        """Copies of *postings* with ``tfidf_score`` attached."""
        if self._stats is None:
            logger.warning("TF-IDF corpus not built, skipping TF-IDF scoring")
            return [replace(p, tfidf_score=0) for p in postings]
        return [
            replace(p, tfidf_score=self.score(p, profile_keywords)) for p in postings
        ]
