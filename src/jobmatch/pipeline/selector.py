"""Per-user adaptive threshold selection.

Turns one user's scored batch into a bounded delivery set that is
neither empty (when anything relevant exists) nor flooded:

1. Sort descending by score.
2. Keep postings at or above ``max(matching_threshold, absolute_floor)``.
3. Nothing left but something scored above zero → relax once by
   ``relax_step``, never below the floor.
4. More than twice the daily cap → try a stricter pass at
   ``matching_threshold + tighten_step``; adopt it only if it still
   fills the daily cap.  Availability beats precision.
5. Truncate to ``max_jobs_per_day``.

The absolute floor is system-wide: no posting below it is ever
delivered, whatever a user's own threshold says.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from jobmatch.models import HIGH_MATCH_SCORE, MatchStats

if TYPE_CHECKING:
    from jobmatch.models import JobPosting, UserConfig

logger = logging.getLogger(__name__)

DEFAULT_ABSOLUTE_FLOOR = 50.0
DEFAULT_RELAX_STEP = 10.0
DEFAULT_TIGHTEN_STEP = 10.0


class ThresholdSelector:
    """Selects a user's final list from the scored batch."""

    def __init__(
        self,
        absolute_floor: float = DEFAULT_ABSOLUTE_FLOOR,
        relax_step: float = DEFAULT_RELAX_STEP,
        tighten_step: float = DEFAULT_TIGHTEN_STEP,
    ) -> None:
        self.absolute_floor = absolute_floor
        self.relax_step = relax_step
        self.tighten_step = tighten_step

    def select(self, postings: list[JobPosting], config: UserConfig) -> list[JobPosting]:
        """Return at most ``config.max_jobs_per_day`` postings, best first."""
        cap = config.max_jobs_per_day
        if cap <= 0:
            return []

        ranked = sorted(postings, key=lambda p: p.score, reverse=True)
        threshold = max(config.matching_threshold, self.absolute_floor)
        candidates = _at_or_above(ranked, threshold)

        if not candidates and any(p.score > 0 for p in ranked):
            relaxed = max(config.matching_threshold - self.relax_step, self.absolute_floor)
            candidates = _at_or_above(ranked, relaxed)
            logger.debug(
                "No postings at %.0f, relaxed to %.0f: %d candidates",
                threshold,
                relaxed,
                len(candidates),
            )

        if len(candidates) > 2 * cap:
            stricter_threshold = config.matching_threshold + self.tighten_step
            stricter = _at_or_above(candidates, stricter_threshold)
            if len(stricter) >= cap:
                logger.debug(
                    "Tightened to %.0f: %d → %d candidates",
                    stricter_threshold,
                    len(candidates),
                    len(stricter),
                )
                candidates = stricter

        return candidates[:cap]


def _at_or_above(ranked: list[JobPosting], threshold: float) -> list[JobPosting]:
    return [p for p in ranked if p.score >= threshold]


def compute_stats(matched: list[JobPosting], total_checked: int) -> MatchStats:
    """Aggregate figures for a user's final list."""
    count = len(matched)
    avg = round(sum(p.score for p in matched) / count) if count else 0
    return MatchStats(
        total_jobs_checked=total_checked,
        jobs_matched=count,
        avg_score=avg,
        high_match_count=sum(1 for p in matched if p.score >= HIGH_MATCH_SCORE),
    )
