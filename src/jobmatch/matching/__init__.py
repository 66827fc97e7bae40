"""Matching layer — near-duplicate filtering, corpus statistics, and rubric scoring."""

from jobmatch.matching.corpus import (
    CorpusBooster,
    CorpusStats,
    build_corpus,
    extract_profile_keywords,
)
from jobmatch.matching.dedup import NearDuplicateFilter, deduplicate
from jobmatch.matching.scorer import RubricScore, RubricScorer, filter_by_score

__all__ = [
    "CorpusBooster",
    "CorpusStats",
    "NearDuplicateFilter",
    "RubricScore",
    "RubricScorer",
    "build_corpus",
    "deduplicate",
    "extract_profile_keywords",
    "filter_by_score",
]
