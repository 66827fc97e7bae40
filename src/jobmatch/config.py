"""Configuration loading and validation.

Loads ``settings.toml`` and validates all fields at startup, before any
postings are read or users are scored.  Every section is optional and
falls back to the defaults below; values that are present must be in
range.

The validated config is exposed as a :class:`Settings` dataclass with
typed fields for each section: ``matching``, ``cache``, and ``run``.

User profiles live outside the settings file, one directory per user::

    users/<username>/profile.json
    users/<username>/config.json

:func:`load_users` reads them; disabled users are skipped and a broken
user is logged and skipped rather than failing everyone.
"""

from __future__ import annotations

import json
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from jobmatch.errors import ActionableError
from jobmatch.models import User, UserConfig, UserProfile

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config dataclasses
# ---------------------------------------------------------------------------


@dataclass
class MatchingConfig:
    """Deduplication and selection thresholds from ``[matching]``."""

    absolute_floor: float = 50.0
    relax_step: float = 10.0
    tighten_step: float = 10.0
    company_similarity: float = 0.70
    title_similarity: float = 0.85


@dataclass
class CacheConfig:
    """Recency cache settings from ``[cache]``."""

    path: str = ".cache/job-cache.json"
    recency_window_days: int = 3
    retention_days: int = 30


@dataclass
class RunConfig:
    """Run-level settings from ``[run]``."""

    users_dir: str = "users"
    max_run_seconds: float = 300.0


@dataclass
class Settings:
    """Top-level validated configuration."""

    matching: MatchingConfig = field(default_factory=MatchingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    run: RunConfig = field(default_factory=RunConfig)


# ---------------------------------------------------------------------------
# Default settings path
# ---------------------------------------------------------------------------

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")


# ---------------------------------------------------------------------------
# Loading and validation
# ---------------------------------------------------------------------------


def load_settings(
    path: str | Path = DEFAULT_SETTINGS_PATH,
    *,
    missing_ok: bool = False,
) -> Settings:
    """Load and validate settings from a TOML file.

    Raises :class:`~jobmatch.errors.ActionableError`:
      - CONFIG if the file is missing (unless ``missing_ok``)
      - VALIDATION if field values are out of range
      - PARSE if the TOML is malformed

    Returns a fully validated :class:`Settings` instance.
    """
    filepath = Path(path)
    if not filepath.exists():
        if missing_ok:
            logger.info("No settings file at %s — using defaults", filepath)
            return Settings()
        raise ActionableError.config(
            field_name="settings_path",
            reason=f"Settings file not found: {filepath}",
            suggestion=f"Create {filepath} or copy from config/settings.toml.example",
        )

    raw_text = filepath.read_text(encoding="utf-8")
    try:
        data = tomllib.loads(raw_text)
    except tomllib.TOMLDecodeError as exc:
        raise ActionableError.parse(
            source=str(filepath),
            raw_error=str(exc),
            suggestion=f"Fix TOML syntax in {filepath}",
        ) from None

    return _validate(data)


def _validate(data: dict[str, object]) -> Settings:
    """Validate raw TOML data and return a Settings instance."""

    # -- matching section ----------------------------------------------------
    matching_data = _section(data, "matching")
    matching = MatchingConfig(
        absolute_floor=_number(matching_data, "matching", "absolute_floor", 50.0),
        relax_step=_number(matching_data, "matching", "relax_step", 10.0),
        tighten_step=_number(matching_data, "matching", "tighten_step", 10.0),
        company_similarity=_number(matching_data, "matching", "company_similarity", 0.70),
        title_similarity=_number(matching_data, "matching", "title_similarity", 0.85),
    )

    _check_range("matching.absolute_floor", matching.absolute_floor, 0.0, 100.0)
    _check_range("matching.relax_step", matching.relax_step, 0.0, 100.0)
    _check_range("matching.tighten_step", matching.tighten_step, 0.0, 100.0)
    for name in ("company_similarity", "title_similarity"):
        _check_range(f"matching.{name}", getattr(matching, name), 0.0, 1.0)

    # -- cache section -------------------------------------------------------
    cache_data = _section(data, "cache")
    cache = CacheConfig(
        path=str(cache_data.get("path", ".cache/job-cache.json")),
        recency_window_days=int(_number(cache_data, "cache", "recency_window_days", 3)),
        retention_days=int(_number(cache_data, "cache", "retention_days", 30)),
    )
    for name in ("recency_window_days", "retention_days"):
        value = getattr(cache, name)
        if value < 1:
            raise ActionableError.validation(
                field_name=f"cache.{name}",
                reason=f"is {value} — must be >= 1",
                suggestion=f"Set [cache].{name} to a whole number of days (1 or more)",
            )

    # -- run section ---------------------------------------------------------
    run_data = _section(data, "run")
    run = RunConfig(
        users_dir=str(run_data.get("users_dir", "users")),
        max_run_seconds=_number(run_data, "run", "max_run_seconds", 300.0),
    )
    if run.max_run_seconds <= 0:
        raise ActionableError.validation(
            field_name="run.max_run_seconds",
            reason=f"is {run.max_run_seconds} — must be > 0",
            suggestion="Set [run].max_run_seconds to a positive number of seconds",
        )

    return Settings(matching=matching, cache=cache, run=run)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def load_users(users_dir: str | Path) -> list[User]:
    """Load every enabled user from ``users_dir``, sorted by username.

    A missing directory yields no users.  A user whose files are missing
    or malformed is skipped with a warning so one bad profile cannot
    block delivery to everyone else.
    """
    root = Path(users_dir)
    if not root.is_dir():
        logger.warning("Users directory %s not found", root)
        return []

    users: list[User] = []
    for user_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        username = user_dir.name
        profile_path = user_dir / "profile.json"
        config_path = user_dir / "config.json"
        if not profile_path.exists() or not config_path.exists():
            logger.warning("Skipping %s: missing profile.json or config.json", username)
            continue

        try:
            profile = UserProfile.from_dict(_read_json(profile_path))
            config = UserConfig.from_dict(_read_json(config_path), profile)
        except ActionableError as exc:
            logger.error("Error loading user %s: %s", username, exc.error)
            continue
        except (TypeError, ValueError, AttributeError) as exc:
            logger.error("Error loading user %s: %s", username, exc)
            continue

        if not config.enabled:
            logger.debug("User %s is disabled", username)
            continue

        users.append(User(username=username, profile=profile, config=config))
        logger.debug("Loaded user: %s (%s)", username, profile.name)

    return users


def _read_json(path: Path) -> dict[str, object]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ActionableError.parse(source=str(path), raw_error=str(exc)) from None
    if not isinstance(data, dict):
        raise ActionableError.validation(
            field_name=str(path),
            reason=f"must be a JSON object, not {type(data).__name__}",
        )
    return data


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return an optional top-level table, or an empty dict."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ActionableError.config(
            field_name=name,
            reason=f"[{name}] must be a table, not {type(section).__name__}",
            suggestion=f"Define [{name}] as a TOML table",
        )
    return section


def _number(section: dict[str, object], section_name: str, key: str, default: float) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ActionableError.validation(
            field_name=f"{section_name}.{key}",
            reason=f"must be a number, got {value!r}",
        )
    return float(value)


def _check_range(field_name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ActionableError.validation(
            field_name=field_name,
            reason=f"is {value} — must be between {low} and {high}",
            suggestion=f"Set {field_name} to a value between {low} and {high}",
        )
