"""Shared data contracts: postings in, user profiles and configs, match results out.

Source adapters emit :class:`JobPosting` records; the engine attaches
``score``, ``match_reasons`` and ``tfidf_score``.  ``url`` is the
canonical identity of a posting — two records with the same URL are
always the same job.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

logger = logging.getLogger(__name__)

HIGH_MATCH_SCORE = 85

_ID_BYTES = 8


def generate_job_id() -> str:
    """Short random URL-safe identifier for postings that arrive without one."""
    return secrets.token_urlsafe(_ID_BYTES)[:10]


@dataclass
class JobPosting:
    """Board-agnostic posting consumed by every stage of the engine.

    Required fields are ``title``, ``company`` and ``url``; see
    :func:`is_eligible`.  Optional fields degrade gracefully when absent.
    """

    title: str
    company: str
    location: str
    url: str
    platform: str = ""
    description: str | None = None
    source: str | None = None
    posted_date: datetime | None = None
    id: str = field(default_factory=generate_job_id)
    score: int = 0
    match_reasons: list[str] = field(default_factory=list)
    tfidf_score: int = 0

    @property
    def text(self) -> str:
        """Title and description joined, as used for corpus statistics."""
        return f"{self.title} {self.description or ''}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobPosting:
        """Build a posting from an adapter record (camelCase or snake_case keys)."""
        posted = data.get("postedDate", data.get("posted_date"))
        if isinstance(posted, str) and posted:
            try:
                posted = datetime.fromisoformat(posted.replace("Z", "+00:00"))
            except ValueError:
                logger.debug("Unparseable postedDate %r — ignoring", posted)
                posted = None
        elif not isinstance(posted, datetime):
            posted = None

        return cls(
            id=str(data.get("id") or generate_job_id()),
            title=str(data.get("title") or ""),
            company=str(data.get("company") or ""),
            location=str(data.get("location") or ""),
            url=str(data.get("url") or ""),
            platform=str(data.get("platform") or ""),
            description=_optional_text(data, "description"),
            source=_optional_text(data, "source"),
            posted_date=posted,
            score=int(data.get("score") or 0),
            match_reasons=list(data.get("matchReasons", data.get("match_reasons")) or []),
            tfidf_score=int(data.get("tfidfScore", data.get("tfidf_score")) or 0),
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible record using the adapters' camelCase keys."""
        result: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "url": self.url,
            "platform": self.platform,
            "score": self.score,
            "matchReasons": list(self.match_reasons),
            "tfidfScore": self.tfidf_score,
        }
        if self.description is not None:
            result["description"] = self.description
        if self.source is not None:
            result["source"] = self.source
        if self.posted_date is not None:
            result["postedDate"] = self.posted_date.isoformat()
        return result


def _optional_text(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None or isinstance(value, str):
        return value
    logger.debug("Non-text %s %r — ignoring", key, value)
    return None


def is_eligible(posting: JobPosting) -> bool:
    """True when the posting carries a non-blank title, company and url."""
    return all(
        isinstance(value, str) and value.strip()
        for value in (posting.title, posting.company, posting.url)
    )


def filter_eligible(postings: list[JobPosting]) -> list[JobPosting]:
    """Drop ineligible postings at the ingestion boundary.

    Dropping is not an error: adapters occasionally emit half-parsed
    cards, and they simply never enter the engine.
    """
    eligible: list[JobPosting] = []
    for posting in postings:
        if is_eligible(posting):
            eligible.append(posting)
        else:
            logger.debug("Dropping ineligible posting %r (%s)", posting.title, posting.url)
    return eligible


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UserProfile:
    """What a user is looking for.  Immutable for the duration of a run."""

    name: str
    location: str = ""
    target_roles: tuple[str, ...] = ()
    skills_primary: tuple[str, ...] = ()
    skills_technologies: tuple[str, ...] = ()
    min_experience_match: float = 0.0
    languages: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserProfile:
        """Build from the ``profile.json`` shape (nested ``skills`` table)."""
        skills = data.get("skills") or {}
        return cls(
            name=str(data.get("name", "")),
            location=str(data.get("location", "")),
            target_roles=tuple(data.get("target_roles") or ()),
            skills_primary=tuple(skills.get("primary") or ()),
            skills_technologies=tuple(skills.get("technologies") or ()),
            min_experience_match=float(data.get("min_experience_match") or 0.0),
            languages=tuple(data.get("languages") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "location": self.location,
            "target_roles": list(self.target_roles),
            "skills": {
                "primary": list(self.skills_primary),
                "technologies": list(self.skills_technologies),
            },
            "min_experience_match": self.min_experience_match,
            "languages": list(self.languages),
        }


@dataclass(frozen=True)
class UserConfig:
    """Delivery gates and limits for one user.

    ``chat_id`` and ``email`` identify the delivery target; the engine
    never interprets them.
    """

    enabled: bool = True
    matching_threshold: float = 60.0
    max_jobs_per_day: int = 10
    name: str = ""
    chat_id: str | None = None
    email: str | None = None

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        profile: UserProfile | None = None,
    ) -> UserConfig:
        """Build from the ``config.json`` shape.

        A missing ``matching_threshold`` falls back to the profile's
        ``min_experience_match`` (fractions are read as percentages).
        """
        threshold = data.get("matching_threshold")
        if threshold is None and profile is not None and profile.min_experience_match:
            threshold = profile.min_experience_match
            if threshold <= 1:
                threshold = round(threshold * 100, 2)
        chat_id = data.get("telegram_chat_id", data.get("chat_id"))
        return cls(
            enabled=bool(data.get("enabled", True)),
            matching_threshold=float(threshold if threshold is not None else 60.0),
            max_jobs_per_day=int(data.get("max_jobs_per_day", 10)),
            name=str(data.get("name", "")),
            chat_id=str(chat_id) if chat_id is not None else None,
            email=data.get("email"),
        )


@dataclass(frozen=True)
class User:
    """A profile and config pair keyed by an opaque username."""

    username: str
    profile: UserProfile
    config: UserConfig


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass
class MatchStats:
    """Aggregate figures for one user's final list."""

    total_jobs_checked: int = 0
    jobs_matched: int = 0
    avg_score: int = 0
    high_match_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "total_jobs_checked": self.total_jobs_checked,
            "jobs_matched": self.jobs_matched,
            "avg_score": self.avg_score,
            "high_match_count": self.high_match_count,
        }


@dataclass
class UserMatchResult:
    """Final per-user list handed to the delivery layer."""

    username: str
    profile: UserProfile
    config: UserConfig
    matched_jobs: list[JobPosting] = field(default_factory=list)
    stats: MatchStats = field(default_factory=MatchStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "profile": self.profile.to_dict(),
            "matched_jobs": [job.to_dict() for job in self.matched_jobs],
            "stats": self.stats.to_dict(),
        }
