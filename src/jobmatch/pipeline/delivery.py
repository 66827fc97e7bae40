"""Delivery orchestration around the recency cache.

For each user's result the recently-shown postings are filtered out,
the fresh remainder is handed to the caller-supplied ``send`` coroutine,
and **only after** ``send`` returns are those postings marked as shown.
A send that raises marks nothing, so the postings stay eligible for the
next run.

Users are delivered sequentially: the cache has a single writer.  After
the last user the cache is cleaned up and saved.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from jobmatch.logging import user_logger
from jobmatch.recency import DEFAULT_WINDOW_DAYS

if TYPE_CHECKING:
    from jobmatch.models import UserMatchResult
    from jobmatch.recency import RecencyCache

SendFn = Callable[["UserMatchResult"], Awaitable[None]]


@dataclass
class DeliveryReport:
    """What happened to each user during delivery."""

    delivered: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    cache_saved: bool = False


async def deliver(
    results: list[UserMatchResult],
    cache: RecencyCache,
    send: SendFn,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> DeliveryReport:
    """Send each user's fresh postings and record them in *cache*.

    ``send`` receives a copy of the result whose ``matched_jobs`` holds
    only fresh postings.  Users with nothing fresh are not sent anything
    and are counted in :attr:`DeliveryReport.skipped` instead.
    """
    report = DeliveryReport()

    for result in results:
        log = user_logger(result.username)
        stats = cache.filter_stats(result.matched_jobs, result.username, window_days)
        fresh = cache.filter_recently_shown(result.matched_jobs, result.username, window_days)
        log.info(
            "%d matched → %d fresh (filtered %d recently shown)",
            stats.total,
            stats.fresh,
            stats.duplicates,
        )

        if not fresh:
            report.skipped[result.username] = stats.total
            continue

        try:
            await send(replace(result, matched_jobs=fresh))
        except Exception:
            log.exception("Delivery failed, postings left unmarked for the next run")
            report.failed.append(result.username)
            continue

        for posting in fresh:
            cache.mark_as_shown(posting, result.username)
        report.delivered[result.username] = len(fresh)

    cache.cleanup()
    report.cache_saved = cache.save()
    return report
