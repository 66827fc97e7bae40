"""Persistent recency cache — who has already seen which posting, and when.

The cache prevents re-showing the same posting to the same user within a
trailing window of days.  It is an explicit object with a
load → mutate → save lifecycle, passed by reference to whoever delivers
results.  It is the only mutable shared state in a run and assumes a
single writer: all :meth:`RecencyCache.mark_as_shown` calls must happen
sequentially, after scoring has finished and only for postings whose
delivery was confirmed.

On disk the cache is a JSON list of entries::

    [{"url": "...", "title": "...", "company": "...",
      "firstSeen": "2026-10-17", "lastSeen": "2026-10-19",
      "shownToUsers": ["hadi", "saud"]}]

Elapsed days are computed with a **ceiling**: anything after midnight
of ``lastSeen`` already counts as one day.  A window of N days therefore
hides a posting for the rest of its ``lastSeen`` day and the N - 2 days
after it; a one-day window hides nothing once midnight has passed.
"""

from __future__ import annotations

import json
import math
import os
import tempfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from jobmatch.errors import ActionableError
from jobmatch.logging import logger

if TYPE_CHECKING:
    from jobmatch.models import JobPosting


DEFAULT_CACHE_PATH = Path(".cache/job-cache.json")
DEFAULT_WINDOW_DAYS = 3
RETENTION_DAYS = 30

_SECONDS_PER_DAY = 24 * 60 * 60

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class CacheEntry:
    """One posting's delivery history, keyed by URL."""

    url: str
    title: str
    company: str
    first_seen: str
    last_seen: str
    shown_to_users: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CacheEntry:
        """Raises KeyError/ValueError on records that are not cache entries."""
        first_seen = date.fromisoformat(str(data["firstSeen"])).isoformat()
        last_seen = date.fromisoformat(str(data["lastSeen"])).isoformat()
        return cls(
            url=str(data["url"]),
            title=str(data.get("title", "")),
            company=str(data.get("company", "")),
            first_seen=first_seen,
            last_seen=last_seen,
            shown_to_users=[str(u) for u in data.get("shownToUsers", [])],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "company": self.company,
            "firstSeen": self.first_seen,
            "lastSeen": self.last_seen,
            "shownToUsers": list(self.shown_to_users),
        }


@dataclass
class FilterStats:
    total: int
    fresh: int
    duplicates: int


@dataclass
class CacheStats:
    total_jobs: int
    unique_users: set[str]
    oldest_entry: str | None
    newest_entry: str | None


class RecencyCache:
    """File-backed record of postings already shown to each user.

    Usage::

        cache = RecencyCache(".cache/job-cache.json")
        cache.load()
        fresh = cache.filter_recently_shown(postings, "hadi", window_days=3)
        ...  # deliver fresh postings
        for posting in fresh:
            cache.mark_as_shown(posting, "hadi")
        cache.cleanup()
        cache.save()
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_CACHE_PATH,
        *,
        clock: Clock | None = None,
        retention_days: int = RETENTION_DAYS,
    ) -> None:
        self.path = Path(path)
        self.retention_days = retention_days
        self._clock = clock or _utc_now
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def get(self, url: str) -> CacheEntry | None:
        return self._entries.get(url)

    # -- persistence ---------------------------------------------------------

    def load(self) -> bool:
        """Read entries from disk, replacing anything in memory.

        A missing file is a fresh start.  An unreadable or malformed
        file is logged and the cache continues empty — losing history
        is preferable to failing the run.  Returns True if the file
        was read successfully.
        """
        self._entries = {}
        if not self.path.exists():
            logger.info("No existing recency cache at %s, starting fresh", self.path)
            return False

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise TypeError(f"expected a JSON list, got {type(raw).__name__}")
            entries = [CacheEntry.from_dict(item) for item in raw]
        except (OSError, ValueError, TypeError, KeyError) as exc:
            err = ActionableError.cache(str(self.path), "load", str(exc))
            logger.error("%s — continuing with an empty cache", err.error)
            return False

        self._entries = {entry.url: entry for entry in entries}
        logger.info("Loaded recency cache: %d postings", len(self._entries))
        return True

    def save(self) -> bool:
        """Write all entries to disk atomically.  Returns False on failure."""
        payload = json.dumps([e.to_dict() for e in self._entries.values()], indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            err = ActionableError.cache(str(self.path), "save", str(exc))
            logger.error(err.error)
            return False

        logger.info("Saved recency cache: %d postings", len(self._entries))
        return True

    # -- mutation ------------------------------------------------------------

    def mark_as_shown(self, posting: JobPosting, username: str) -> None:
        """Record that *posting* was delivered to *username* today."""
        today = self._today()
        entry = self._entries.get(posting.url)
        if entry is None:
            self._entries[posting.url] = CacheEntry(
                url=posting.url,
                title=posting.title,
                company=posting.company,
                first_seen=today,
                last_seen=today,
                shown_to_users=[username],
            )
            return

        entry.last_seen = today
        if username not in entry.shown_to_users:
            entry.shown_to_users.append(username)

    def cleanup(self) -> int:
        """Evict entries last seen more than ``retention_days`` ago."""
        stale = [
            url for url, entry in self._entries.items()
            if self.days_since(entry.last_seen) > self.retention_days
        ]
        for url in stale:
            del self._entries[url]
        if stale:
            logger.info("Cleaned up %d old entries from recency cache", len(stale))
        return len(stale)

    # -- queries -------------------------------------------------------------

    def was_shown_recently(
        self,
        posting: JobPosting,
        username: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> bool:
        entry = self._entries.get(posting.url)
        if entry is None or username not in entry.shown_to_users:
            return False
        return self.days_since(entry.last_seen) < window_days

    def filter_recently_shown(
        self,
        postings: list[JobPosting],
        username: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> list[JobPosting]:
        """Postings *username* has not been shown within the window."""
        return [
            p for p in postings
            if not self.was_shown_recently(p, username, window_days)
        ]

    def filter_stats(
        self,
        postings: list[JobPosting],
        username: str,
        window_days: int = DEFAULT_WINDOW_DAYS,
    ) -> FilterStats:
        fresh = len(self.filter_recently_shown(postings, username, window_days))
        return FilterStats(total=len(postings), fresh=fresh, duplicates=len(postings) - fresh)

    def stats(self) -> CacheStats:
        users: set[str] = set()
        oldest: str | None = None
        newest: str | None = None
        for entry in self._entries.values():
            users.update(entry.shown_to_users)
            if oldest is None or entry.first_seen < oldest:
                oldest = entry.first_seen
            if newest is None or entry.last_seen > newest:
                newest = entry.last_seen
        return CacheStats(
            total_jobs=len(self._entries),
            unique_users=users,
            oldest_entry=oldest,
            newest_entry=newest,
        )

    def days_since(self, day: str) -> int:
        """Whole days since UTC midnight of *day*, rounded up."""
        start = datetime.combine(date.fromisoformat(day), datetime.min.time(), tzinfo=UTC)
        elapsed = (self._clock() - start).total_seconds()
        return math.ceil(elapsed / _SECONDS_PER_DAY)

    def _today(self) -> str:
        return self._clock().astimezone(UTC).date().isoformat()
