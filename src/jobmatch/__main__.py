"""CLI entry point for the job matching engine."""

from __future__ import annotations

import argparse
import logging
import sys

from jobmatch.errors import ActionableError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jobmatch",
        description="Deduplicate, score, and select job postings for multiple users",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="Path to settings.toml (default: config/settings.toml if present)",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        default=None,
        help="Also write a timestamped log file to this directory",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show DEBUG output on stderr (per-posting dedup and relaxation decisions)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Only show warnings and errors")
    sub = parser.add_subparsers(dest="command", required=True)

    # -- match ---------------------------------------------------------------
    match_p = sub.add_parser("match", help="Match a batch of postings for all enabled users")
    match_p.add_argument("--postings", required=True, help="JSON file of scraped postings")
    match_p.add_argument("--users", default=None, help="Users directory (default: [run].users_dir)")
    match_p.add_argument("--output", default=None, help="Write results as JSON to this file")
    match_p.add_argument(
        "--outbox",
        default=None,
        help="Deliver fresh postings as per-user JSON files and record them in the cache",
    )

    # -- top-terms -----------------------------------------------------------
    terms_p = sub.add_parser("top-terms", help="Show the rarest terms in a batch")
    terms_p.add_argument("--postings", required=True, help="JSON file of scraped postings")
    terms_p.add_argument("--limit", type=int, default=20, metavar="N", help="Number of terms")

    # -- cache ---------------------------------------------------------------
    sub.add_parser("cache-stats", help="Summarise the recency cache")
    sub.add_parser("cache-cleanup", help="Evict stale recency cache entries")

    return parser


def main(argv: list[str] | None = None) -> None:
    from jobmatch import cli
    from jobmatch.logging import configure_file_logging, set_verbosity

    parser = build_parser()
    args = parser.parse_args(argv)

    set_verbosity(args.verbose, quiet=args.quiet)
    if args.log_dir:
        configure_file_logging(args.log_dir, level=logging.DEBUG if args.verbose else logging.INFO)

    handlers = {
        "match": cli.handle_match,
        "top-terms": cli.handle_top_terms,
        "cache-stats": cli.handle_cache_stats,
        "cache-cleanup": cli.handle_cache_cleanup,
    }
    try:
        handlers[args.command](args)
    except ActionableError as exc:
        print(f"Error: {exc.error}", file=sys.stderr)
        if exc.suggestion:
            print(f"Suggestion: {exc.suggestion}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
