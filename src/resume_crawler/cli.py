from __future__ import annotations

import argparse
import logging
from pathlib import Path

from resume_crawler.config import RUN_REQUIRED_ENVS_ANY, Settings, load_settings, mask_proxy, missing_envs
from resume_crawler.crawler import run_job
from resume_crawler.errors import ListingParseError
from resume_crawler.pools import open_fetch_pool
from resume_crawler.reporter import build_reporter


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="resume-crawler")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Crawl the resume listing and parse every profile")
    run_parser.add_argument("--query", default=None, help="Free-text search query (SEARCH_QUERY)")
    run_parser.add_argument("--location", default=None, help="Location filter (SEARCH_LOCATION)")
    run_parser.add_argument("--controller-url", default=None, help="Stream results to this controller")
    run_parser.add_argument("--selector-id", default=None, help="Selector id reported to the controller")
    run_parser.add_argument(
        "--backend",
        choices=("httpx", "playwright"),
        default=None,
        help="Fetch pool implementation (FETCH_BACKEND)",
    )
    run_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write collected records here instead of stdout",
    )

    subparsers.add_parser("healthcheck", help="Validate configuration")
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "search_query": args.query,
        "location": args.location,
        "controller_url": args.controller_url,
        "selector_id": args.selector_id,
        "fetch_backend": args.backend,
    }
    update = {key: value for key, value in overrides.items() if value is not None}
    if not update:
        return settings
    # model_copy skips validation, so rebuild the model.
    return Settings(**{**settings.model_dump(), **update})


def _cmd_run(args: argparse.Namespace) -> int:
    settings = _apply_overrides(load_settings(), args)
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not settings.search_query and not settings.location:
        raise ValueError("a search query or a location is required (--query/--location)")

    job = settings.to_job()
    pool = open_fetch_pool(job.pool, settings.fetch_backend)
    reporter = build_reporter(job)
    try:
        result = run_job(job, pool=pool, reporter=reporter)
        output = reporter.to_json()
    finally:
        reporter.close()

    print(
        "run summary:",
        f"pages={result.pages_visited}",
        f"links={len(result.links)}",
        f"parsed={result.parsed_count}",
        f"failed={result.failed_count}",
        f"records={len(result.records)}",
    )

    if job.controller is None:
        if args.output is not None:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output, encoding="utf-8")
            print(f"saved records to: {args.output}")
        else:
            print(output)

    if result.links and result.parsed_count == 0:
        return 1
    return 0


def _cmd_healthcheck() -> int:
    settings = load_settings()
    if len(missing_envs(RUN_REQUIRED_ENVS_ANY)) == len(RUN_REQUIRED_ENVS_ANY):
        print("no SEARCH_QUERY or SEARCH_LOCATION set; pass --query/--location to run")

    if settings.proxies:
        print("proxies:", ", ".join(mask_proxy(proxy) for proxy in settings.proxies))
    else:
        print("no proxies configured; fetching directly")

    if settings.controller_url:
        print(f"streaming results to controller: {settings.controller_url} ({settings.selector_id})")
    else:
        print("no controller configured; results are collected in batch")
    print("healthcheck passed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        if args.command == "run":
            return _cmd_run(args)
        if args.command == "healthcheck":
            return _cmd_healthcheck()
    except (ValueError, ListingParseError) as exc:
        print(exc)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
