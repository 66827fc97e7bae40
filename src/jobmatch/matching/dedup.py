"""Near-duplicate detection across sources.

The same job is routinely syndicated to several boards with cosmetic
differences — a trailing "Inc.", different punctuation, an extra space.
:class:`NearDuplicateFilter` collapses those variants, keeping the first
occurrence so the earliest source in the batch wins.

Two postings are duplicates when:

1. their URLs are equal (always), or
2. their normalized company names are at least ``company_threshold``
   similar **and** their normalized titles are at least
   ``title_threshold`` similar.

The company check runs first as a fast reject, which also lets two
different employers post identically titled roles side by side.

Comparison is pairwise against the accepted set, so a batch of *k*
unique postings costs O(k²) edit-distance computations.  That is fine
for the tens-to-hundreds of postings a daily run sees; an order of
magnitude more would call for bucketing by company prefix first.
"""

from __future__ import annotations

import logging

from jobmatch.models import JobPosting
from jobmatch.text import normalize_company, normalize_title, similarity

logger = logging.getLogger(__name__)

DEFAULT_COMPANY_THRESHOLD = 0.70
DEFAULT_TITLE_THRESHOLD = 0.85


class NearDuplicateFilter:
    """Collapses postings that are the same job with superficial text variation."""

    def __init__(
        self,
        company_threshold: float = DEFAULT_COMPANY_THRESHOLD,
        title_threshold: float = DEFAULT_TITLE_THRESHOLD,
    ) -> None:
        self.company_threshold = company_threshold
        self.title_threshold = title_threshold

    def is_duplicate(self, a: JobPosting, b: JobPosting) -> bool:
        """Return True if *a* and *b* describe the same job."""
        if a.url == b.url:
            return True

        company_sim = similarity(normalize_company(a.company), normalize_company(b.company))
        if company_sim < self.company_threshold:
            return False

        title_sim = similarity(normalize_title(a.title), normalize_title(b.title))
        if title_sim >= self.title_threshold:
            logger.debug(
                "Duplicate detected: %r ≈ %r (title: %.1f%%, company: %.1f%%)",
                a.title,
                b.title,
                title_sim * 100,
                company_sim * 100,
            )
            return True
        return False

    def deduplicate(self, postings: list[JobPosting]) -> list[JobPosting]:
        """Return the unique postings in first-occurrence order."""
        unique: list[JobPosting] = []
        seen_urls: set[str] = set()

        for posting in postings:
            if posting.url in seen_urls:
                continue
            if any(self.is_duplicate(posting, kept) for kept in unique):
                continue
            unique.append(posting)
            seen_urls.add(posting.url)

        removed = len(postings) - len(unique)
        rate = (removed / len(postings) * 100) if postings else 0.0
        logger.info(
            "Fuzzy dedup: %d → %d postings (removed %d duplicates, %.1f%% reduction)",
            len(postings),
            len(unique),
            removed,
            rate,
        )
        return unique

    def duplicate_groups(
        self, postings: list[JobPosting]
    ) -> list[tuple[JobPosting, list[JobPosting]]]:
        """Group postings by the first member they duplicate.

        Only groups with more than one member are returned.  Each group
        lists the representative first, then its duplicates in input
        order.  Intended for diagnostics, not for the delivery path.
        """
        groups: list[tuple[JobPosting, list[JobPosting]]] = []
        processed: set[int] = set()

        for i, posting in enumerate(postings):
            if i in processed:
                continue
            processed.add(i)
            members = [posting]
            for j in range(i + 1, len(postings)):
                if j in processed:
                    continue
                if self.is_duplicate(posting, postings[j]):
                    members.append(postings[j])
                    processed.add(j)
            if len(members) > 1:
                groups.append((posting, members))

        return groups


def deduplicate(postings: list[JobPosting]) -> list[JobPosting]:
    """Deduplicate with the default thresholds."""
    return NearDuplicateFilter().deduplicate(postings)
