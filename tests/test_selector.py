"""BDD tests for per-user adaptive threshold selection.

Covers: TestSelectionBounds, TestRelaxation, TestTightening, TestMatchStats
"""

# Public API surface (from src/jobmatch/pipeline/selector.py):
#   ThresholdSelector(absolute_floor=50, relax_step=10, tighten_step=10)
#   selector.select(postings, config) -> list[JobPosting]
#   compute_stats(matched, total_checked) -> MatchStats

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from jobmatch.models import UserConfig
from jobmatch.pipeline.selector import ThresholdSelector, compute_stats

if TYPE_CHECKING:
    from collections.abc import Callable

    from jobmatch.models import JobPosting


def _config(threshold: float = 60.0, cap: int = 10) -> UserConfig:
    return UserConfig(matching_threshold=threshold, max_jobs_per_day=cap)


class TestSelectionBounds:
    """
    REQUIREMENT: A user never receives more than their daily cap, and
    never anything below the absolute floor.

    WHO: Every user receiving a delivery
    WHAT: Output is sorted descending by score, truncated to
          max_jobs_per_day; no posting scores below max(threshold, floor)
          except via the one-step relaxation, which itself never goes
          below the floor; a cap of 0 yields nothing
    WHY: Flooding a user teaches them to ignore the channel; sub-floor
         postings are noise regardless of personal settings
    """

    def test_output_is_sorted_and_capped(
        self, make_posting: Callable[..., JobPosting]
    ) -> None:
        """
        Given 5 postings above threshold and a cap of 3
        When selected
        Then the 3 best are returned in descending score order
        """
        postings = [make_posting(score=s) for s in (70, 90, 65, 80, 75)]

        result = ThresholdSelector().select(postings, _config(threshold=60, cap=3))

        assert [p.score for p in result] == [90, 80, 75]

    def test_user_threshold_below_floor_is_raised_to_floor(
        self, make_posting: Callable[..., JobPosting]
    ) -> None:
        """
        Given a user threshold of 30 and postings scoring 55 and 45
        When selected with the default floor of 50
        Then only the 55 is kept
        """
        postings = [make_posting(score=55), make_posting(score=45)]

        result = ThresholdSelector().select(postings, _config(threshold=30))

        assert [p.score for p in result] == [55]

    def test_zero_cap_yields_nothing(self, make_posting: Callable[..., JobPosting]) -> None:
        """A user who wants no postings today receives none."""
        result = ThresholdSelector().select([make_posting(score=95)], _config(cap=0))

        assert result == []

    def test_empty_batch_yields_nothing(self) -> None:
        """No postings is not an error."""
        assert ThresholdSelector().select([], _config()) == []


class TestRelaxation:
    """
    REQUIREMENT: When nothing clears the threshold, it relaxes once.

    WHO: Users with a strict threshold on a thin day
    WHAT: If no posting reaches max(threshold, floor) and something
          scored above zero, retry once at max(threshold - 10, floor)
    WHY: A near miss is more useful than silence, but the floor still
         protects against junk
    """

    def test_near_misses_are_admitted_after_relaxing(
        self, make_posting: Callable[..., JobPosting]
    ) -> None:
        """
        Given a threshold of 70 and postings scoring 65 and 58
        When selected
        Then relaxing to 60 admits the 65 only
        """
        postings = [make_posting(score=65), make_posting(score=58)]

        result = ThresholdSelector().select(postings, _config(threshold=70))

        assert [p.score for p in result] == [65]

    def test_relaxation_never_goes_below_floor(
        self, make_posting: Callable[..., JobPosting]
    ) -> None:
        """
        Given a threshold of 55 and a posting scoring 48
        When selected
        Then relaxing would reach 45 but the floor of 50 holds: nothing is kept
        """
        result = ThresholdSelector().select([make_posting(score=48)], _config(threshold=55))

        assert result == []

    def test_all_zero_scores_are_not_relaxed(
        self, make_posting: Callable[..., JobPosting]
    ) -> None:
        """With nothing relevant at all, relaxing cannot help and is skipped."""
        selector = ThresholdSelector(absolute_floor=0)

        result = selector.select([make_posting(score=0)], _config(threshold=10))

        assert result == []


class TestTightening:
    """
    REQUIREMENT: An oversupplied user is tightened, but only when the
    stricter set still fills the daily cap.

    WHO: Users with a loose threshold on a busy day
    WHAT: If candidates exceed twice the cap, retry at threshold + 10;
          adopt the stricter set only if it has at least cap postings
    WHY: Availability beats precision — never trade a full list for a
         shorter, stricter one
    """

    def test_stricter_set_is_adopted_when_it_fills_the_cap(
        self, make_posting: Callable[..., JobPosting], caplog: pytest.LogCaptureFixture
    ) -> None:
        """
        Given a cap of 2, threshold 60, and five candidates (3 at or above 70)
        When selected
        Then the selector tightens to 70 and returns the top 2
        """
        postings = [make_posting(score=s) for s in (61, 62, 70, 75, 80)]

        with caplog.at_level(logging.DEBUG, logger="jobmatch.pipeline.selector"):
            result = ThresholdSelector().select(postings, _config(threshold=60, cap=2))

        assert [p.score for p in result] == [80, 75]
        assert "Tightened to 70: 5 → 3 candidates" in caplog.text

    def test_stricter_set_is_rejected_when_it_underfills(
        self, make_posting: Callable[..., JobPosting], caplog: pytest.LogCaptureFixture
    ) -> None:
        """
        Given a cap of 3, threshold 60, seven candidates and only 1 at or above 70
        When selected
        Then the selector keeps the looser set so the cap is filled
        """
        postings = [make_posting(score=s) for s in (61, 62, 63, 64, 65, 66, 90)]

        with caplog.at_level(logging.DEBUG, logger="jobmatch.pipeline.selector"):
            result = ThresholdSelector().select(postings, _config(threshold=60, cap=3))

        assert [p.score for p in result] == [90, 66, 65]
        assert "Tightened" not in caplog.text

    def test_small_candidate_set_is_not_tightened(
        self, make_posting: Callable[..., JobPosting], caplog: pytest.LogCaptureFixture
    ) -> None:
        """Exactly twice the cap is not oversupply, so no stricter pass runs."""
        postings = [make_posting(score=s) for s in (70, 75, 80, 85)]

        with caplog.at_level(logging.DEBUG, logger="jobmatch.pipeline.selector"):
            ThresholdSelector().select(postings, _config(threshold=60, cap=2))

        assert "Tightened" not in caplog.text


class TestMatchStats:
    """
    REQUIREMENT: Every user's result carries aggregate figures.

    WHO: The delivery message header and run logs
    WHAT: jobs_matched, rounded avg_score (0 for empty), count of postings
          at 85 or above, and the number of unique postings checked
    WHY: Users judge a day's list at a glance before opening it
    """

    def test_stats_for_non_empty_list(self, make_posting: Callable[..., JobPosting]) -> None:
        """Scores 90, 85, 60 give avg 78 and two high matches."""
        matched = [make_posting(score=s) for s in (90, 85, 60)]

        stats = compute_stats(matched, total_checked=12)

        assert stats.total_jobs_checked == 12
        assert stats.jobs_matched == 3
        assert stats.avg_score == 78
        assert stats.high_match_count == 2

    def test_stats_for_empty_list(self) -> None:
        """An empty list averages to 0 rather than dividing by zero."""
        stats = compute_stats([], total_checked=5)

        assert stats.jobs_matched == 0
        assert stats.avg_score == 0
