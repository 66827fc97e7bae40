"""Rubric-based relevance scoring for a (user, posting) pair.

Four independently computed sub-scores are summed and clamped to
``[0, 100]``:

=============  ===========  ==============================================
Category       Points       Rule
=============  ===========  ==============================================
Title          0–40         best target-role word overlap with the title
Skills         6 per skill  primary skills found in the description
Technologies   0–20         2 per technology found, capped at 20
Location       0–10         Riyadh 10, remote/hybrid 8, Saudi Arabia 5
=============  ===========  ==============================================

The skills category is *not* capped on its own — six or more matched
skills can exceed 30 points — and only the final clamp bounds it.

Descriptions are expanded with long forms of common abbreviations
("ML" → "machine learning") before skill and technology matching, so
"ML models" satisfies a "Machine Learning" skill.  Titles are matched
without expansion.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jobmatch.models import JobPosting, UserProfile

MAX_SCORE = 100
TITLE_EXACT_POINTS = 40
TITLE_PARTIAL_POINTS = 35
POINTS_PER_SKILL = 6
POINTS_PER_TECHNOLOGY = 2
MAX_TECHNOLOGY_POINTS = 20
MAX_REASON_TECHNOLOGIES = 3

# (substring, points), first match wins
LOCATION_POINTS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("riyadh",), 10),
    (("remote", "hybrid"), 8),
    (("saudi arabia",), 5),
)
LOCATION_REASON = "Based in Riyadh, Saudi Arabia"

ABBREVIATIONS: dict[str, tuple[str, ...]] = {
    "ml": ("machine learning",),
    "ai": ("artificial intelligence",),
    "dt": ("digital transformation",),
    "genai": ("generative ai", "generative artificial intelligence"),
    "mlops": ("machine learning operations", "ml operations"),
    "api": ("application programming interface",),
}
_ABBREVIATION_PATTERNS = {
    abbr: re.compile(rf"\b{abbr}\b", re.IGNORECASE) for abbr in ABBREVIATIONS
}


def expand_abbreviations(text: str) -> str:
    """Lowercase *text* and append long forms of any abbreviations it contains."""
    expanded = text.lower()
    for abbr, pattern in _ABBREVIATION_PATTERNS.items():
        if pattern.search(text):
            expanded += " " + " ".join(ABBREVIATIONS[abbr])
    return expanded


@dataclass
class RubricScore:
    """Breakdown of one posting's score for one profile."""

    score: int
    match_reasons: list[str] = field(default_factory=list)
    title_score: int = 0
    skill_score: int = 0
    tech_score: int = 0
    location_score: int = 0


class RubricScorer:
    """Scores postings against a single :class:`UserProfile`."""

    def __init__(self, profile: UserProfile) -> None:
        self.profile = profile

    def score_job(self, posting: JobPosting) -> RubricScore:
        reasons: list[str] = []

        title_score, matched_role = self.score_title(posting.title)
        if matched_role is not None:
            reasons.append(f"Role matches {matched_role}")

        description = expand_abbreviations(posting.description or "")

        skills = self.find_skills(description)
        skill_score = len(skills) * POINTS_PER_SKILL
        if skills:
            reasons.append(f"Requires {', '.join(skills)} (matches your expertise)")

        techs = self.find_technologies(description)
        tech_score = min(len(techs) * POINTS_PER_TECHNOLOGY, MAX_TECHNOLOGY_POINTS)
        if techs:
            reasons.append(
                f"Tech stack includes {', '.join(techs[:MAX_REASON_TECHNOLOGIES])}"
            )

        location_score = score_location(posting.location)
        if location_score > 0:
            reasons.append(LOCATION_REASON)

        total = title_score + skill_score + tech_score + location_score
        return RubricScore(
            score=max(0, min(total, MAX_SCORE)),
            match_reasons=reasons,
            title_score=title_score,
            skill_score=skill_score,
            tech_score=tech_score,
            location_score=location_score,
        )

    def score_title(self, title: str) -> tuple[int, str | None]:
        """Best role-overlap score across target roles, and the winning role."""
        title_words = title.lower().split()
        best_score = 0
        best_role: str | None = None

        for role in self.profile.target_roles:
            role_words = role.lower().split()
            if not role_words:
                continue
            matched = [
                word for word in role_words
                if any(word in tw or tw in word for tw in title_words)
            ]
            ratio = len(matched) / len(role_words)
            score = TITLE_EXACT_POINTS if ratio == 1.0 else math.floor(ratio * TITLE_PARTIAL_POINTS)
            if score > best_score:
                best_score = score
                best_role = role

        return best_score, best_role

    def find_skills(self, description: str) -> list[str]:
        """Primary skills present in an already lower-cased description."""
        return [s for s in self.profile.skills_primary if s.lower() in description]

    def find_technologies(self, description: str) -> list[str]:
        """Technologies present in an already lower-cased description."""
        return [t for t in self.profile.skills_technologies if t.lower() in description]

    def score_jobs(self, postings: list[JobPosting]) -> list[JobPosting]:
        """Copies of *postings* with ``score`` and ``match_reasons`` attached."""
        scored: list[JobPosting] = []
        for posting in postings:
            result = self.score_job(posting)
            scored.append(replace(posting, score=result.score, match_reasons=result.match_reasons))
        return scored


def score_location(location: str) -> int:
    lowered = (location or "").lower()
    for needles, points in LOCATION_POINTS:
        if any(needle in lowered for needle in needles):
            return points
    return 0


def filter_by_score(postings: list[JobPosting], min_score: float) -> list[JobPosting]:
    """Postings scoring at least *min_score*, in input order."""
    return [p for p in postings if p.score >= min_score]
