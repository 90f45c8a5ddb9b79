from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

ResultRecord = dict[str, Any]


@dataclass(frozen=True)
class FetchPoolConfig:
    proxies: tuple[str, ...] = ()
    wait_seconds: float = 0.0
    fetcher_count: int = 1
    request_timeout_seconds: float = 20.0
    user_agent: str = "resume-crawler/0.1"


@dataclass(frozen=True)
class ControllerBinding:
    url: str
    selector_id: str


@dataclass(frozen=True)
class CrawlJob:
    search_query: str | None
    location: str | None
    pool: FetchPoolConfig = field(default_factory=FetchPoolConfig)
    controller: ControllerBinding | None = None
    max_listing_pages: int = 100


@dataclass(frozen=True)
class PageFetched:
    url: str
    content: str
    attempts: int = 1


@dataclass(frozen=True)
class FetchFailed:
    url: str
    error: str
    attempts: int


FetchOutcome = Union[PageFetched, FetchFailed]

StopReason = Literal["last_page", "page_limit", "fetch_failed"]


@dataclass(frozen=True)
class ListingResult:
    links: list[str]
    pages_visited: int
    stopped_reason: StopReason


@dataclass(frozen=True)
class LinkOutcome:
    link: str
    records: list[ResultRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class CrawlResult:
    listing_url: str
    links: list[str]
    pages_visited: int
    outcomes: list[LinkOutcome]
    records: list[ResultRecord]

    @property
    def parsed_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed_count(self) -> int:
        return len(self.outcomes) - self.parsed_count
