from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from resume_crawler.fetcher import PageFetcher
from resume_crawler.models import FetchFailed, LinkOutcome
from resume_crawler.parser import ResumeParser
from resume_crawler.reporter import Reporter

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ResumeProcessor:
    def __init__(
        self,
        fetcher: PageFetcher,
        parser: ResumeParser,
        reporter: Reporter,
        *,
        clock: Clock | None = None,
    ):
        self.fetcher = fetcher
        self.parser = parser
        self.reporter = reporter
        self.clock = clock or _utc_now

    def process(self, links: Iterable[str]) -> list[LinkOutcome]:
        return [self.process_link(link) for link in links]

    def process_link(self, link: str) -> LinkOutcome:
        page = self.fetcher.fetch(link)
        if isinstance(page, FetchFailed):
            self.reporter.report_status(f"Error in fetching {link}: {page.error}")
            return LinkOutcome(link=link, error=page.error)

        metadata = {"time_scraped": self.clock().replace(microsecond=0).isoformat()}
        try:
            parsed = self.parser.parse(page.content, link, metadata)
            records = [{**metadata, **record} for record in parsed]
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            logger.warning("failed to parse %s: %s", link, error)
            self.reporter.report_status(f"Error in parsing {link}: {error}")
            return LinkOutcome(link=link, error=error)

        self.reporter.report_results(records, link)
        return LinkOutcome(link=link, records=records)
