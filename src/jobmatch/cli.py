"""CLI command handlers for the job matching engine.

Each public function corresponds to a CLI subcommand and encapsulates
the wiring, orchestration, and output for that command.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from jobmatch.errors import ActionableError
from jobmatch.models import JobPosting

if TYPE_CHECKING:
    from jobmatch.config import Settings
    from jobmatch.models import UserMatchResult


def load_postings(path: str | Path) -> list[JobPosting]:
    """Read a JSON list of posting records written by the source adapters."""
    filepath = Path(path)
    try:
        raw = json.loads(filepath.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ActionableError.config(
            field_name="--postings",
            reason=f"Postings file not found: {filepath}",
            suggestion="Pass the JSON file produced by the source adapters",
        ) from None
    except json.JSONDecodeError as exc:
        raise ActionableError.parse(source=str(filepath), raw_error=str(exc)) from None

    if not isinstance(raw, list):
        raise ActionableError.validation(
            field_name="--postings",
            reason=f"{filepath} must contain a JSON list of postings",
        )
    postings: list[JobPosting] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        try:
            postings.append(JobPosting.from_dict(item))
        except (ValueError, TypeError, OverflowError) as exc:
            raise ActionableError.from_exception(
                exc,
                f"{filepath} record {index}",
                "read postings",
                suggestion="Fix or remove the record; score and tfidfScore must be integers",
            ) from exc
    return postings


def _settings(args: argparse.Namespace) -> Settings:
    from jobmatch.config import DEFAULT_SETTINGS_PATH, load_settings

    path = getattr(args, "settings", None)
    if path:
        return load_settings(path)
    return load_settings(DEFAULT_SETTINGS_PATH, missing_ok=True)


def handle_match(args: argparse.Namespace) -> None:
    """Match a batch of postings for every enabled user.

    With ``--outbox`` each user's fresh postings are written to
    ``<outbox>/<username>.json`` and recorded in the recency cache;
    without it the run is a dry run and the cache is left untouched.
    """
    from jobmatch.config import load_users
    from jobmatch.pipeline.runner import MatchRunner

    settings = _settings(args)
    postings = load_postings(args.postings)
    users = load_users(args.users or settings.run.users_dir)

    result = MatchRunner(settings).run(postings, users)

    print(f"\n{'=' * 60}")
    print(" Match Summary")
    print(f"{'=' * 60}")
    print(f" Postings received: {result.summary.total_received}")
    print(f" Ineligible:        {result.summary.total_ineligible}")
    print(f" Duplicates:        {result.summary.total_deduplicated}")
    print(f" Unique:            {result.summary.total_unique}")
    print(f" Users matched:     {result.summary.users_processed}")
    print(f" Users failed:      {result.summary.users_failed}")
    print(f" Duration:          {result.duration_seconds:.1f}s")
    print(f"{'=' * 60}\n")

    for user_result in result.results:
        stats = user_result.stats
        print(
            f"{user_result.username}: {stats.jobs_matched} matched "
            f"(avg {stats.avg_score}%, high match: {stats.high_match_count})"
        )
        for i, job in enumerate(user_result.matched_jobs, 1):
            print(f"  {i}. [{job.score}] {job.title} — {job.company}")
            print(f"     {job.url}")
            for reason in job.match_reasons:
                print(f"     • {reason}")
        print()

    for failure in result.failures:
        print(f"FAILED {failure.username}: {failure.error.error}")

    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "results": [r.to_dict() for r in result.results],
            "failures": [
                {"username": f.username, **f.error.to_dict()} for f in result.failures
            ],
        }
        out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        print(f"Exported results → {out_path}")

    if args.outbox:
        _deliver_to_outbox(result.results, settings, Path(args.outbox))


def _deliver_to_outbox(
    results: list[UserMatchResult],
    settings: Settings,
    outbox: Path,
) -> None:
    from jobmatch.pipeline.delivery import deliver
    from jobmatch.recency import RecencyCache

    cache = RecencyCache(settings.cache.path, retention_days=settings.cache.retention_days)
    cache.load()
    outbox.mkdir(parents=True, exist_ok=True)

    async def _send(user_result: UserMatchResult) -> None:
        target = outbox / f"{user_result.username}.json"
        target.write_text(json.dumps(user_result.to_dict(), indent=2), encoding="utf-8")

    report = asyncio.run(
        deliver(results, cache, _send, window_days=settings.cache.recency_window_days)
    )

    for username, count in report.delivered.items():
        print(f"Delivered {count} posting(s) to {username} → {outbox / f'{username}.json'}")
    for username, count in report.skipped.items():
        print(f"No fresh postings for {username} ({count} already shown recently)")
    for username in report.failed:
        print(f"Delivery failed for {username}")


def handle_top_terms(args: argparse.Namespace) -> None:
    """Print the rarest terms of a batch, after eligibility and dedup."""
    from jobmatch.matching.corpus import build_corpus
    from jobmatch.matching.dedup import NearDuplicateFilter
    from jobmatch.models import filter_eligible

    settings = _settings(args)
    dedup = NearDuplicateFilter(
        company_threshold=settings.matching.company_similarity,
        title_threshold=settings.matching.title_similarity,
    )
    unique = dedup.deduplicate(filter_eligible(load_postings(args.postings)))
    corpus = build_corpus(unique)
    if corpus is None:
        print("No postings — nothing to analyse.")
        return

    print(f"{corpus.unique_terms} unique terms across {corpus.document_count} postings")
    for weight in corpus.top_terms(args.limit):
        print(f"  {weight.term:<30} idf={weight.idf:.3f}  df={weight.doc_freq}")


def handle_cache_stats(args: argparse.Namespace) -> None:
    """Summarise the recency cache."""
    from jobmatch.recency import RecencyCache

    settings = _settings(args)
    cache = RecencyCache(settings.cache.path, retention_days=settings.cache.retention_days)
    cache.load()
    stats = cache.stats()
    print(f"Cache file:   {cache.path}")
    print(f"Postings:     {stats.total_jobs}")
    print(f"Users:        {', '.join(sorted(stats.unique_users)) or '-'}")
    print(f"Oldest entry: {stats.oldest_entry or '-'}")
    print(f"Newest entry: {stats.newest_entry or '-'}")


def handle_cache_cleanup(args: argparse.Namespace) -> None:
    """Evict stale entries from the recency cache and save it."""
    from jobmatch.recency import RecencyCache

    settings = _settings(args)
    cache = RecencyCache(settings.cache.path, retention_days=settings.cache.retention_days)
    cache.load()
    removed = cache.cleanup()
    if not cache.save():
        print(f"Error: could not write {cache.path}")
        sys.exit(1)
    print(f"Removed {removed} stale entries; {len(cache)} remain")
