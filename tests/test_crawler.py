import json
from datetime import datetime, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from resume_crawler.controller import ControllerClient
from resume_crawler.crawler import run_job
from resume_crawler.errors import ListingParseError
from resume_crawler.models import ControllerBinding, CrawlJob
from resume_crawler.reporter import BatchReporter, build_reporter

FIRST_URL = "https://www.indeed.com/resumes?q=engineer&l=Austin"
SECOND_URL = "https://www.indeed.com/resumes?q=engineer&l=Austin&start=50"
CAPTURED_AT = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _listing_html(hrefs: list[str], next_href: str | None = None) -> str:
    items = "".join(
        f'<li itemtype="http://schema.org/Person"><a class="app_link" href="{href}">Profile</a></li>'
        for href in hrefs
    )
    next_link = f'<a class="next" href="{next_href}">Next</a>' if next_href else ""
    return f"<html><body><ol>{items}</ol>{next_link}</body></html>"


def _resume_html(name: str) -> str:
    return (
        f'<html><body><h1 id="resume-contact">{name}</h1>'
        f'<div id="resume_body"><div id="res_summary">{name} builds things</div></div></body></html>'
    )


def _site() -> dict[str, str]:
    return {
        FIRST_URL: _listing_html(["/r/alice", "/r/bob"], next_href="?q=engineer&amp;l=Austin&amp;start=50"),
        SECOND_URL: _listing_html(["/r/carol"]),
        "https://www.indeed.com/r/alice": _resume_html("Alice"),
        "https://www.indeed.com/r/bob": _resume_html("Bob"),
        "https://www.indeed.com/r/carol": _resume_html("Carol"),
    }


class SitePool:
    def __init__(self, pages: dict[str, str]):
        self.pages = pages
        self.requested: list[str] = []
        self.restarts = 0
        self.closed = 0

    def get_page(self, url: str) -> str:
        self.requested.append(url)
        if url not in self.pages:
            raise ConnectionError(f"no route to {url}")
        return self.pages[url]

    def restart_fetcher(self) -> None:
        self.restarts += 1

    def close_all(self) -> None:
        self.closed += 1


class StatusSpy(BatchReporter):
    def __init__(self) -> None:
        super().__init__()
        self.statuses: list[str] = []

    def report_status(self, message: str) -> None:
        self.statuses.append(message)


def test_batch_crawl_collects_records_in_discovery_order() -> None:
    pool = SitePool(_site())
    reporter = StatusSpy()
    job = CrawlJob(search_query="engineer", location="Austin")

    result = run_job(job, pool=pool, reporter=reporter, clock=lambda: CAPTURED_AT)

    assert result.listing_url == FIRST_URL
    assert result.pages_visited == 2
    assert result.links == [
        "https://www.indeed.com/r/alice",
        "https://www.indeed.com/r/bob",
        "https://www.indeed.com/r/carol",
    ]
    assert [record["name"] for record in result.records] == ["Alice", "Bob", "Carol"]
    assert all(record["time_scraped"] == "2026-10-19T12:00:00+00:00" for record in result.records)
    assert [record["name"] for record in json.loads(reporter.to_json())] == ["Alice", "Bob", "Carol"]
    assert result.parsed_count == 3
    assert result.failed_count == 0
    assert pool.closed == 1
    assert reporter.statuses == ["Finished collecting data for selector engineer Austin"]


def test_incremental_crawl_streams_to_controller() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200)

    binding = ControllerBinding(url="http://controller.test", selector_id="sel-7")
    job = CrawlJob(search_query="engineer", location="Austin", controller=binding)
    client = ControllerClient(binding, client=httpx.Client(transport=httpx.MockTransport(handler)))
    reporter = build_reporter(job, client=client)

    result = run_job(job, pool=SitePool(_site()), reporter=reporter)

    assert result.records == []
    assert reporter.to_json() == "[]"
    endpoints = [request.url.path for request in requests]
    assert endpoints == ["/relay_results"] * 3 + ["/update_status"]
    last_form = parse_qs(requests[-1].content.decode("utf-8"))
    assert last_form["status_message"] == ["Finished collecting data for selector engineer Austin"]
    assert last_form["selector_id"] == ["sel-7"]


def test_failed_detail_page_does_not_abort_the_crawl() -> None:
    pages = _site()
    pages["https://www.indeed.com/r/bob"] = "<html><body>Resume removed</body></html>"
    pool = SitePool(pages)
    reporter = StatusSpy()

    result = run_job(CrawlJob(search_query="engineer", location="Austin"), pool=pool, reporter=reporter)

    assert [record["name"] for record in result.records] == ["Alice", "Carol"]
    assert result.failed_count == 1
    assert reporter.statuses[0].startswith("Error in parsing https://www.indeed.com/r/bob: ")
    assert pool.closed == 1


def test_unreachable_listing_finishes_with_no_links() -> None:
    pool = SitePool({})
    reporter = StatusSpy()

    result = run_job(CrawlJob(search_query="engineer", location="Austin"), pool=pool, reporter=reporter)

    assert result.links == []
    assert result.records == []
    assert pool.restarts == 2
    assert pool.closed == 1
    assert reporter.statuses == [
        f"Error in fetching listing {FIRST_URL}: no route to {FIRST_URL}",
        "Finished collecting data for selector engineer Austin",
    ]


def test_malformed_listing_aborts_and_releases_pool() -> None:
    pool = SitePool({FIRST_URL: "<li itemtype='http://schema.org/Person'>no link</li>"})
    reporter = StatusSpy()

    with pytest.raises(ListingParseError):
        run_job(CrawlJob(search_query="engineer", location="Austin"), pool=pool, reporter=reporter)

    assert pool.closed == 1
    assert len(reporter.statuses) == 1
    assert reporter.statuses[0].startswith("Aborted crawl: ")


def test_page_limit_is_reported() -> None:
    pool = SitePool(_site())
    reporter = StatusSpy()
    job = CrawlJob(search_query="engineer", location="Austin", max_listing_pages=1)

    result = run_job(job, pool=pool, reporter=reporter)

    assert result.pages_visited == 1
    assert len(result.records) == 2
    assert SECOND_URL not in pool.requested
    assert reporter.statuses[0] == f"Stopped paginating {FIRST_URL} at the 1 page limit"


def test_missing_query_and_location_render_as_blank() -> None:
    pool = SitePool({"https://www.indeed.com/resumes": _listing_html([])})
    reporter = StatusSpy()

    result = run_job(CrawlJob(search_query=None, location=None), pool=pool, reporter=reporter)

    assert result.listing_url == "https://www.indeed.com/resumes"
    assert reporter.statuses == ["Finished collecting data for selector  "]
