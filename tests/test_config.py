"""Configuration validation tests.

Covers: TestSettingsLoading, TestUserLoading
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from jobmatch.config import load_settings, load_users
from jobmatch.errors import ActionableError, ErrorType

if TYPE_CHECKING:
    from collections.abc import Callable

# A complete valid settings TOML for tests
_VALID_SETTINGS = """\
[matching]
absolute_floor = 55
relax_step = 5
tighten_step = 15
company_similarity = 0.75
title_similarity = 0.9

[cache]
path = "./data/cache.json"
recency_window_days = 7
retention_days = 60

[run]
users_dir = "./people"
max_run_seconds = 120
"""


def _write_settings(tmpdir: str, content: str) -> Path:
    """Write settings content to a temp file and return the path."""
    path = Path(tmpdir) / "settings.toml"
    path.write_text(content, encoding="utf-8")
    return path


class TestSettingsLoading:
    """REQUIREMENT: Invalid or missing configuration is caught at startup, not mid-run.

    WHO: The operator who misconfigured settings.toml
    WHAT: A missing file raises a CONFIG error unless explicitly optional;
          malformed TOML raises a PARSE error; out-of-range thresholds,
          non-numeric values and non-positive day counts raise VALIDATION
          errors naming the field; absent sections fall back to defaults
    WHY: A bad threshold discovered after users have been scored would
         deliver the wrong postings to everyone
    """

    def test_valid_settings_load_without_error(self) -> None:
        """A well-formed settings.toml loads every section."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, _VALID_SETTINGS)
            settings = load_settings(path)
            assert settings.matching.absolute_floor == 55
            assert settings.matching.relax_step == 5
            assert settings.matching.tighten_step == 15
            assert settings.matching.company_similarity == 0.75
            assert settings.matching.title_similarity == 0.9
            assert settings.cache.path == "./data/cache.json"
            assert settings.cache.recency_window_days == 7
            assert settings.cache.retention_days == 60
            assert settings.run.users_dir == "./people"
            assert settings.run.max_run_seconds == 120

    def test_optional_sections_use_documented_defaults_when_absent(self) -> None:
        """An empty file yields the documented defaults rather than None or zero."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, "")
            settings = load_settings(path)
            assert settings.matching.absolute_floor == 50
            assert settings.matching.company_similarity == 0.70
            assert settings.matching.title_similarity == 0.85
            assert settings.cache.recency_window_days == 3
            assert settings.cache.retention_days == 30
            assert settings.run.max_run_seconds == 300

    def test_missing_file_raises_config_error(self) -> None:
        """A missing settings file names the path so the operator knows what to create."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "absent.toml"
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.CONFIG
            assert "absent.toml" in exc_info.value.error

    def test_missing_file_is_allowed_when_optional(self) -> None:
        """With missing_ok the defaults are returned instead of an error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            settings = load_settings(Path(tmpdir) / "absent.toml", missing_ok=True)
            assert settings.matching.absolute_floor == 50

    def test_malformed_toml_raises_parse_error(self) -> None:
        """Broken TOML syntax is reported as a PARSE error naming the file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, "[matching\nabsolute_floor = ")
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.PARSE
            assert "settings.toml" in exc_info.value.error

    @pytest.mark.parametrize(
        ("original", "replacement", "field_name"),
        [
            ("absolute_floor = 55", "absolute_floor = 120", "absolute_floor"),
            ("relax_step = 5", "relax_step = -1", "relax_step"),
            ("title_similarity = 0.9", "title_similarity = 1.5", "title_similarity"),
            ("company_similarity = 0.75", "company_similarity = -0.1", "company_similarity"),
            ("recency_window_days = 7", "recency_window_days = 0", "recency_window_days"),
            ("retention_days = 60", "retention_days = 0", "retention_days"),
            ("max_run_seconds = 120", "max_run_seconds = 0", "max_run_seconds"),
        ],
    )
    def test_out_of_range_value_raises_validation_error(
        self, original: str, replacement: str, field_name: str
    ) -> None:
        """An out-of-range value is rejected at startup, naming the field."""
        bad_toml = _VALID_SETTINGS.replace(original, replacement)
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, bad_toml)
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.VALIDATION
            assert field_name in exc_info.value.error

    def test_non_numeric_threshold_raises_validation_error(self) -> None:
        """A quoted number is not silently coerced."""
        bad_toml = _VALID_SETTINGS.replace("absolute_floor = 55", 'absolute_floor = "55"')
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, bad_toml)
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.VALIDATION
            assert "absolute_floor" in exc_info.value.error

    def test_boolean_threshold_raises_validation_error(self) -> None:
        """TOML booleans are not numbers, even though Python treats them as ints."""
        bad_toml = _VALID_SETTINGS.replace("relax_step = 5", "relax_step = true")
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, bad_toml)
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.VALIDATION

    def test_section_that_is_not_a_table_raises_config_error(self) -> None:
        """``matching = 5`` instead of a [matching] table is a CONFIG error."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = _write_settings(tmpdir, "matching = 5\n")
            with pytest.raises(ActionableError) as exc_info:
                load_settings(path)
            assert exc_info.value.error_type == ErrorType.CONFIG
            assert "matching" in exc_info.value.error


class TestUserLoading:
    """REQUIREMENT: Users are discovered from per-user directories, and one
    broken user never blocks the others.

    WHO: The match command, loading everyone before a run
    WHAT: Each ``users/<name>/`` with profile.json and config.json becomes
          a User, sorted by name; disabled users, users with a missing
          file and users with malformed JSON are skipped; a missing
          threshold falls back to the profile's min_experience_match
    WHY: One user's typo must not cost everyone else their daily list
    """

    def test_enabled_users_are_loaded_sorted_by_name(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """Two valid users load in name order with their nested skills."""
        write_user("saud")
        write_user("hadi")

        users = load_users(tmp_path / "users")

        assert [u.username for u in users] == ["hadi", "saud"]
        assert users[0].profile.skills_primary == ("Machine Learning",)
        assert users[0].profile.skills_technologies == ("Python",)
        assert users[0].config.chat_id == "12345"

    def test_disabled_user_is_skipped(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """``enabled: false`` keeps a user out of the run."""
        write_user("hadi")
        write_user("saud", config={"enabled": False, "matching_threshold": 50})

        users = load_users(tmp_path / "users")

        assert [u.username for u in users] == ["hadi"]

    def test_malformed_user_is_skipped_and_others_load(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """
        Given one user whose profile.json is not valid JSON
        When users are loaded
        Then that user is skipped and the others still load
        """
        write_user("hadi")
        broken = write_user("saud")
        (broken / "profile.json").write_text("{not json", encoding="utf-8")

        users = load_users(tmp_path / "users")

        assert [u.username for u in users] == ["hadi"]

    def test_user_missing_config_is_skipped(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """A directory without config.json is not a user yet."""
        write_user("hadi")
        (write_user("saud") / "config.json").unlink()

        assert [u.username for u in load_users(tmp_path / "users")] == ["hadi"]

    def test_non_object_profile_is_skipped(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """A profile.json holding a list instead of an object is rejected."""
        broken = write_user("saud")
        (broken / "profile.json").write_text(json.dumps(["AI Engineer"]), encoding="utf-8")

        assert load_users(tmp_path / "users") == []

    def test_missing_threshold_falls_back_to_profile_fraction(
        self, tmp_path: Path, write_user: Callable[..., Path]
    ) -> None:
        """min_experience_match 0.6 becomes a matching threshold of 60."""
        write_user("hadi", config={"enabled": True, "max_jobs_per_day": 5})

        users = load_users(tmp_path / "users")

        assert users[0].config.matching_threshold == 60
        assert users[0].config.max_jobs_per_day == 5

    def test_missing_users_directory_yields_no_users(self, tmp_path: Path) -> None:
        """No users directory means nobody to match, not a crash."""
        assert load_users(tmp_path / "nobody") == []
