"""CLI entrypoint for running one crawl."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from .config import (
    ContentFilters,
    CrawlRequest,
    DataSelector,
    FetcherConfig,
    InvalidRequestError,
    load_config,
)
from .fetcher import STRATEGY_REGISTRY
from .pipeline import Pipeline
from .types import CrawlResult, RunState

FILTER_NAMES = ("headings", "paragraphs", "images", "links")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a site breadth-first and extract headings, paragraphs, images, links, and tables.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML request config.",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Start URL. Overrides the config value; https:// is assumed when no scheme is given.",
    )

    parser.add_argument("--max_pages", type=int, default=None)
    parser.add_argument("--page_depth", type=int, default=None)
    parser.add_argument(
        "--same_domain_only",
        dest="same_domain_only",
        action="store_true",
        default=None,
        help="Only follow links on the start URL's origin (default).",
    )
    parser.add_argument(
        "--no_same_domain_only",
        dest="same_domain_only",
        action="store_false",
        help="Follow links to any origin.",
    )
    parser.add_argument(
        "--data_type",
        type=str,
        choices=[selector.value for selector in DataSelector],
        default=None,
    )

    for name in FILTER_NAMES:
        parser.add_argument(
            f"--{name}",
            dest=name,
            action="store_true",
            default=None,
            help=f"Extract {name}.",
        )
        parser.add_argument(
            f"--no_{name}",
            dest=name,
            action="store_false",
            help=f"Do not extract {name}.",
        )

    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument(
        "--retries",
        type=int,
        default=None,
        help="Attempts per fetch strategy.",
    )
    parser.add_argument("--retry_backoff_seconds", type=float, default=None)
    parser.add_argument(
        "--strategy",
        action="append",
        default=[],
        choices=sorted(STRATEGY_REGISTRY),
        help="Fetch strategy (repeatable, tried in the given order). Overrides config strategies.",
    )

    parser.add_argument(
        "--log_file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    parser.add_argument(
        "--print_items_json",
        action="store_true",
        help="Print the full result (items, logs, stats) as JSON on stdout after the run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> tuple[CrawlRequest, FetcherConfig]:
    if args.config is not None:
        request, fetcher_config = load_config(args.config)
        payload: dict[str, Any] = request.to_dict()
        fetcher_payload: dict[str, Any] = fetcher_config.to_dict()
    else:
        payload = {"start_url": args.url}
        fetcher_payload = {}

    if args.url:
        payload["start_url"] = args.url
    if not payload.get("start_url"):
        raise InvalidRequestError("No start URL provided. Use --config or --url.")

    if args.max_pages is not None:
        payload["max_pages"] = args.max_pages
    if args.page_depth is not None:
        payload["page_depth"] = args.page_depth
    if args.same_domain_only is not None:
        payload["same_domain_only"] = args.same_domain_only
    if args.data_type is not None:
        payload["data_type"] = args.data_type

    filters = dict(payload.get("filters") or ContentFilters().to_dict())
    for name in FILTER_NAMES:
        value = getattr(args, name)
        if value is not None:
            filters[name] = value
    payload["filters"] = filters

    if args.timeout_seconds is not None:
        fetcher_payload["timeout_seconds"] = args.timeout_seconds
    if args.retries is not None:
        fetcher_payload["attempts_per_strategy"] = args.retries
    if args.retry_backoff_seconds is not None:
        fetcher_payload["retry_backoff_seconds"] = args.retry_backoff_seconds
    if args.strategy:
        fetcher_payload["strategies"] = list(args.strategy)

    return CrawlRequest.from_dict(payload), FetcherConfig.from_dict(fetcher_payload)


def setup_logging(log_file: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Connection pool chatter drowns the per-attempt lines at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def print_summary(result: CrawlResult, *, print_items_json: bool) -> None:
    stats = result.stats.to_json()

    if print_items_json:
        print(json.dumps(result.to_json(), indent=2, ensure_ascii=False))
        return

    print("\n=== Crawl Complete ===")
    print(f"start_url: {result.start_url}")
    print(f"state: {result.state.value}{' (partial)' if result.partial else ''}")
    print(f"pages_scraped: {result.pages_scraped}")
    print(f"items: {result.item_count}")

    print("\n--- Items By Type ---")
    for data_type, count in sorted(result.stats.items_by_type.items()):
        print(f"{data_type}: {count}")

    print("\n--- Core Stats ---")
    for key in [
        "frontier_enqueued",
        "frontier_skipped_seen",
        "fetch_attempts",
        "fetched_ok",
        "fetched_error",
        "parsed_error",
        "text_pages",
    ]:
        print(f"{key}: {stats[key]}")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, verbose=args.verbose)

    try:
        request, fetcher_config = build_config(args)
    except (OSError, ValueError) as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    logging.info(
        "Starting crawl: url=%s, max_pages=%d, page_depth=%d, strategies=%s",
        request.start_url,
        request.max_pages,
        request.page_depth,
        ",".join(fetcher_config.strategies),
    )

    try:
        result = Pipeline(fetcher_config).run(request)
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        return 130

    print_summary(result, print_items_json=args.print_items_json)
    return 1 if result.state == RunState.FATAL else 0


if __name__ == "__main__":
    raise SystemExit(main())
