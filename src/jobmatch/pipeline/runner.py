"""Match runner — orchestrates eligibility → dedup → corpus → per-user matching.

The MatchRunner is the top-level orchestrator for one batch:

1. Drop ineligible postings (missing title, company, or url)
2. Collapse near-duplicates across sources
3. Build corpus statistics once, shared by every user
4. For each enabled user: rubric score → TF-IDF boost → threshold select
5. Assemble per-user results and a summary

A failure while matching one user is isolated: it is logged, recorded
in :attr:`RunResult.failures`, and that user is left out of
:attr:`RunResult.results` while everyone else is processed normally.

The runner writes no shared state.  Delivery and the recency cache
live in :mod:`jobmatch.pipeline.delivery`.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from jobmatch.errors import ActionableError
from jobmatch.logging import logger, user_logger
from jobmatch.matching.corpus import CorpusBooster, build_corpus, extract_profile_keywords
from jobmatch.matching.dedup import NearDuplicateFilter
from jobmatch.matching.scorer import RubricScorer
from jobmatch.models import UserMatchResult, filter_eligible
from jobmatch.pipeline.selector import ThresholdSelector, compute_stats

if TYPE_CHECKING:
    from jobmatch.config import Settings
    from jobmatch.matching.corpus import CorpusStats
    from jobmatch.models import JobPosting, User


@dataclass
class RunSummary:
    """Batch-level counts, used in CLI output and logs."""

    total_received: int = 0
    total_ineligible: int = 0
    total_deduplicated: int = 0
    total_unique: int = 0
    users_processed: int = 0
    users_failed: int = 0


@dataclass
class UserFailure:
    """A user whose matching raised; they receive nothing this run."""

    username: str
    error: ActionableError


@dataclass
class RunResult:
    """Results from a match run, consumed by the delivery layer and CLI."""

    results: list[UserMatchResult] = field(default_factory=list)
    failures: list[UserFailure] = field(default_factory=list)
    summary: RunSummary = field(default_factory=RunSummary)
    unique_postings: list[JobPosting] = field(default_factory=list)
    duration_seconds: float = 0.0
    overran: bool = False


class MatchRunner:
    """Top-level orchestrator: dedups the batch once, then matches every user."""

    def __init__(
        self,
        settings: Settings,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._timer = timer
        self._dedup = NearDuplicateFilter(
            company_threshold=settings.matching.company_similarity,
            title_threshold=settings.matching.title_similarity,
        )
        self._selector = ThresholdSelector(
            absolute_floor=settings.matching.absolute_floor,
            relax_step=settings.matching.relax_step,
            tighten_step=settings.matching.tighten_step,
        )

    def run(self, postings: list[JobPosting], users: list[User]) -> RunResult:
        """Match *postings* for every enabled user in *users*.

        An empty batch or an empty user list is not an error — the
        result simply has no per-user entries.
        """
        started = self._timer()
        summary = RunSummary(total_received=len(postings))

        # Step 1: Eligibility gate
        eligible = filter_eligible(postings)
        summary.total_ineligible = len(postings) - len(eligible)

        # Step 2: Near-duplicate collapse
        unique = self._dedup.deduplicate(eligible)
        summary.total_deduplicated = len(eligible) - len(unique)
        summary.total_unique = len(unique)

        # Step 3: Corpus statistics, once for the whole batch
        corpus = build_corpus(unique)

        active = [u for u in users if u.config.enabled]
        if not active:
            logger.warning("No enabled users — nothing to match")
        else:
            logger.info(
                "Matching %d postings for %d user(s): %s",
                len(unique),
                len(active),
                ", ".join(u.username for u in active),
            )

        # Step 4: Per-user matching, failures isolated
        result = RunResult(summary=summary, unique_postings=unique)
        for user in active:
            try:
                matched = self.match_user(user, unique, corpus)
            except Exception as exc:
                user_logger(user.username).exception("Matching failed, skipping user")
                result.failures.append(UserFailure(
                    username=user.username,
                    error=ActionableError.scoring(user.username, str(exc) or type(exc).__name__),
                ))
                continue
            result.results.append(matched)

        summary.users_processed = len(result.results)
        summary.users_failed = len(result.failures)

        # Step 5: Wall-clock bound (reported, never fatal)
        result.duration_seconds = self._timer() - started
        if result.duration_seconds > self._settings.run.max_run_seconds:
            result.overran = True
            logger.warning(
                "Run took %.1fs, over the %.0fs budget",
                result.duration_seconds,
                self._settings.run.max_run_seconds,
            )

        logger.info(
            "Run complete: %d received, %d ineligible, %d duplicates, %d unique; "
            "%d user(s) matched, %d failed",
            summary.total_received,
            summary.total_ineligible,
            summary.total_deduplicated,
            summary.total_unique,
            summary.users_processed,
            summary.users_failed,
        )
        return result

    def match_user(
        self,
        user: User,
        postings: list[JobPosting],
        corpus: CorpusStats | None,
    ) -> UserMatchResult:
        """Score, boost, and select postings for a single user.

        Pure with respect to shared state: *postings* and *corpus* are
        only read, and scored copies are returned.
        """
        scored = RubricScorer(user.profile).score_jobs(postings)
        keywords = extract_profile_keywords(user.profile)
        boosted = CorpusBooster(corpus).score_all(scored, keywords)

        matched = self._selector.select(boosted, user.config)
        stats = compute_stats(matched, len(postings))

        user_logger(user.username).info(
            "%d postings matched (avg %d%%, high match: %d)",
            stats.jobs_matched,
            stats.avg_score,
            stats.high_match_count,
        )
        return UserMatchResult(
            username=user.username,
            profile=user.profile,
            config=user.config,
            matched_jobs=matched,
            stats=stats,
        )
