from __future__ import annotations


class CrawlerError(Exception):
    """Base class for errors raised by the crawler."""


class ListingParseError(CrawlerError):
    """A listing page could not be walked; the crawl cannot continue."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


class ResumeParseError(CrawlerError):
    """A resume detail page did not contain a parseable resume."""
