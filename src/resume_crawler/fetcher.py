from __future__ import annotations

import logging
from typing import Protocol

from tenacity import RetryCallState, Retrying, stop_after_attempt, wait_none

from resume_crawler.models import FetchFailed, FetchOutcome, PageFetched

logger = logging.getLogger(__name__)

MAX_RETRIES = 2


class FetchPool(Protocol):
    def get_page(self, url: str) -> str: ...

    def restart_fetcher(self) -> None: ...

    def close_all(self) -> None: ...


def _describe(exc: BaseException | None) -> str:
    if exc is None:
        return "unknown error"
    return str(exc) or exc.__class__.__name__


class PageFetcher:
    """Fetches pages through a pool, restarting the pool's fetcher between attempts.

    ``attempt`` counts attempts already spent on ``url``; once it reaches
    ``max_retries`` the next failure is final and yields ``FetchFailed``.
    """

    def __init__(self, pool: FetchPool, max_retries: int = MAX_RETRIES):
        self.pool = pool
        self.max_retries = max_retries

    def _restart_before_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "fetch attempt %s failed, restarting fetcher: %s",
            retry_state.attempt_number,
            _describe(exc),
        )
        self.pool.restart_fetcher()

    def fetch(self, url: str, attempt: int = 0) -> FetchOutcome:
        budget = max(self.max_retries - attempt, 0) + 1
        attempts = 0
        content = ""
        try:
            for attempt_state in Retrying(
                stop=stop_after_attempt(budget),
                wait=wait_none(),
                before_sleep=self._restart_before_retry,
                reraise=True,
            ):
                with attempt_state:
                    attempts += 1
                    logger.debug("fetching %s (attempt %s)", url, attempt + attempts)
                    content = self.pool.get_page(url)
        except Exception as exc:
            logger.warning("giving up on %s after %s attempts: %s", url, attempts, _describe(exc))
            return FetchFailed(url=url, error=_describe(exc), attempts=attempts)

        return PageFetched(url=url, content=content, attempts=attempts)
