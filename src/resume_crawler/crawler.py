from __future__ import annotations

import logging

from resume_crawler.errors import ListingParseError
from resume_crawler.fetcher import FetchPool, PageFetcher
from resume_crawler.listing import ListingPaginator
from resume_crawler.models import CrawlJob, CrawlResult, FetchFailed
from resume_crawler.parser import IndeedResumeParser, ResumeParser
from resume_crawler.pools import HttpxFetchPool
from resume_crawler.processor import Clock, ResumeProcessor
from resume_crawler.query import build_listing_url
from resume_crawler.reporter import Reporter, build_reporter

logger = logging.getLogger(__name__)


def _finished_message(job: CrawlJob) -> str:
    return f"Finished collecting data for selector {job.search_query or ''} {job.location or ''}"


def run_job(
    job: CrawlJob,
    *,
    pool: FetchPool | None = None,
    parser: ResumeParser | None = None,
    reporter: Reporter | None = None,
    clock: Clock | None = None,
) -> CrawlResult:
    """Crawl every listing page for ``job`` and parse each discovered resume.

    The pool belongs to the job and is closed exactly once, whether or not
    the crawl succeeds. A ``ListingParseError`` aborts the crawl after a
    status message is reported.
    """
    owns_reporter = reporter is None
    pool = pool if pool is not None else HttpxFetchPool(job.pool)
    parser = parser or IndeedResumeParser()
    reporter = reporter or build_reporter(job)
    fetcher = PageFetcher(pool)
    listing_url = build_listing_url(job.search_query, job.location)
    logger.info("starting crawl at %s", listing_url)

    try:
        try:
            first_page = fetcher.fetch(listing_url)
            if isinstance(first_page, FetchFailed):
                reporter.report_status(f"Error in fetching listing {listing_url}: {first_page.error}")

            try:
                listing = ListingPaginator(fetcher, max_pages=job.max_listing_pages).collect(first_page)
            except ListingParseError as exc:
                reporter.report_status(f"Aborted crawl: {exc}")
                raise

            if listing.stopped_reason == "page_limit":
                reporter.report_status(
                    f"Stopped paginating {listing_url} at the {job.max_listing_pages} page limit"
                )

            processor = ResumeProcessor(fetcher, parser, reporter, clock=clock)
            outcomes = processor.process(listing.links)
        finally:
            pool.close_all()

        reporter.report_status(_finished_message(job))
        result = CrawlResult(
            listing_url=listing_url,
            links=listing.links,
            pages_visited=listing.pages_visited,
            outcomes=outcomes,
            records=reporter.records,
        )
    finally:
        if owns_reporter:
            reporter.close()

    logger.info(
        "crawl finished: %s pages, %s links, %s parsed, %s failed",
        result.pages_visited,
        len(result.links),
        result.parsed_count,
        result.failed_count,
    )
    return result
