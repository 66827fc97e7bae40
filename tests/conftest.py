"""Global test configuration — shared factories and a controllable clock.

This conftest provides:

1. **Data factories** — ``make_posting``, ``make_profile``, ``make_user``
   build realistic domain objects with overridable fields so tests state
   only what they care about.

2. **Settings factory** — ``make_settings`` roots every file path (cache,
   users directory) under ``tmp_path`` so no test touches the real
   ``.cache/`` or ``users/`` directories.

3. **Clock** — ``FakeClock`` is a callable returning a settable UTC
   ``datetime`` for recency-window boundary tests.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from jobmatch.config import CacheConfig, MatchingConfig, RunConfig, Settings
from jobmatch.models import JobPosting, User, UserConfig, UserProfile

if TYPE_CHECKING:
    from pathlib import Path


class FakeClock:
    """Callable clock for :class:`~jobmatch.recency.RecencyCache`."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """A clock fixed at 10:00 UTC on 2026-10-19."""
    return FakeClock(datetime(2026, 10, 19, 10, 0, tzinfo=UTC))


@pytest.fixture
def make_posting():
    """Factory fixture — returns a callable that produces a JobPosting.

    Usage::

        def test_something(make_posting):
            posting = make_posting()
            posting = make_posting(title="HR Specialist", company="Bayt")
            posting = make_posting(url="https://bayt.com/1", score=72)
    """
    counter = {"n": 0}

    def _factory(
        title: str = "AI Engineer",
        company: str = "Aramco",
        location: str = "Riyadh",
        url: str | None = None,
        description: str | None = "Build Python services for Machine Learning platforms.",
        platform: str = "testboard",
        score: int = 0,
    ) -> JobPosting:
        counter["n"] += 1
        return JobPosting(
            title=title,
            company=company,
            location=location,
            url=url or f"https://testboard.com/jobs/{counter['n']}",
            description=description,
            platform=platform,
            score=score,
        )

    return _factory


@pytest.fixture
def make_profile():
    """Factory fixture — returns a callable that produces a UserProfile."""

    def _factory(
        name: str = "Hadi",
        target_roles: tuple[str, ...] = ("AI Engineer",),
        skills_primary: tuple[str, ...] = ("Machine Learning",),
        skills_technologies: tuple[str, ...] = ("Python",),
        location: str = "Riyadh",
    ) -> UserProfile:
        return UserProfile(
            name=name,
            location=location,
            target_roles=target_roles,
            skills_primary=skills_primary,
            skills_technologies=skills_technologies,
            min_experience_match=0.6,
            languages=("English", "Arabic"),
        )

    return _factory


@pytest.fixture
def make_user(make_profile):
    """Factory fixture — returns a callable that produces a User."""

    def _factory(
        username: str = "hadi",
        *,
        profile: UserProfile | None = None,
        enabled: bool = True,
        matching_threshold: float = 50.0,
        max_jobs_per_day: int = 10,
    ) -> User:
        return User(
            username=username,
            profile=profile or make_profile(),
            config=UserConfig(
                enabled=enabled,
                matching_threshold=matching_threshold,
                max_jobs_per_day=max_jobs_per_day,
                name=username.title(),
                chat_id="12345",
            ),
        )

    return _factory


@pytest.fixture
def make_settings(tmp_path: Path):
    """Factory fixture — Settings with every path under ``tmp_path``."""

    def _factory(
        *,
        absolute_floor: float = 50.0,
        max_run_seconds: float = 300.0,
    ) -> Settings:
        return Settings(
            matching=MatchingConfig(absolute_floor=absolute_floor),
            cache=CacheConfig(path=str(tmp_path / "cache" / "job-cache.json")),
            run=RunConfig(users_dir=str(tmp_path / "users"), max_run_seconds=max_run_seconds),
        )

    return _factory


@pytest.fixture
def write_user(tmp_path: Path):
    """Factory fixture — writes ``users/<name>/profile.json`` and ``config.json``."""

    def _factory(
        username: str,
        profile: dict[str, Any] | None = None,
        config: dict[str, Any] | None = None,
    ) -> Path:
        user_dir = tmp_path / "users" / username
        user_dir.mkdir(parents=True, exist_ok=True)
        profile_data = profile if profile is not None else {
            "name": username.title(),
            "location": "Riyadh",
            "target_roles": ["AI Engineer"],
            "skills": {"primary": ["Machine Learning"], "technologies": ["Python"]},
            "min_experience_match": 0.6,
            "languages": ["English"],
        }
        config_data = config if config is not None else {
            "enabled": True,
            "telegram_chat_id": "12345",
            "name": username.title(),
            "matching_threshold": 50,
            "max_jobs_per_day": 10,
        }
        (user_dir / "profile.json").write_text(json.dumps(profile_data), encoding="utf-8")
        (user_dir / "config.json").write_text(json.dumps(config_data), encoding="utf-8")
        return user_dir

    return _factory
