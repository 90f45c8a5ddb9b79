from __future__ import annotations

import logging
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from resume_crawler.errors import ListingParseError
from resume_crawler.fetcher import PageFetcher
from resume_crawler.models import FetchFailed, FetchOutcome, ListingResult

logger = logging.getLogger(__name__)

PROFILE_SELECTOR = "li[itemtype='http://schema.org/Person']"
DETAIL_LINK_SELECTOR = "a.app_link"
NEXT_PAGE_SELECTOR = "a.next"
DEFAULT_MAX_PAGES = 100


def parse_listing_page(html: str, page_url: str) -> tuple[list[str], str | None]:
    """Return the absolute detail links on a listing page and the next page URL, if any."""
    soup = BeautifulSoup(html, "html.parser")
    links: list[str] = []

    for profile in soup.select(PROFILE_SELECTOR):
        anchor = profile.select_one(DETAIL_LINK_SELECTOR)
        href = anchor.get("href") if anchor is not None else None
        if not href:
            raise ListingParseError(page_url, "profile entry without a detail link")
        links.append(urljoin(page_url, href))

    next_anchor = soup.select_one(NEXT_PAGE_SELECTOR)
    if next_anchor is None:
        return links, None

    next_href = next_anchor.get("href")
    if not next_href:
        raise ListingParseError(page_url, "next page control without a target")
    return links, urljoin(page_url, next_href)


class ListingPaginator:
    def __init__(self, fetcher: PageFetcher, max_pages: int = DEFAULT_MAX_PAGES):
        self.fetcher = fetcher
        self.max_pages = max_pages

    def collect(self, first_page: FetchOutcome) -> ListingResult:
        links: list[str] = []
        pages_visited = 0
        page = first_page

        while True:
            if isinstance(page, FetchFailed):
                logger.warning("listing page %s unavailable, stopping pagination: %s", page.url, page.error)
                return ListingResult(links=links, pages_visited=pages_visited, stopped_reason="fetch_failed")

            page_links, next_url = parse_listing_page(page.content, page.url)
            pages_visited += 1
            links.extend(page_links)
            logger.info("listing page %s: %s profiles (%s total)", pages_visited, len(page_links), len(links))

            if next_url is None:
                return ListingResult(links=links, pages_visited=pages_visited, stopped_reason="last_page")
            if pages_visited >= self.max_pages:
                logger.warning("stopping pagination at page limit %s; next page was %s", self.max_pages, next_url)
                return ListingResult(links=links, pages_visited=pages_visited, stopped_reason="page_limit")

            page = self.fetcher.fetch(next_url)
