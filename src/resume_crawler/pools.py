from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import urlsplit

import httpx

from resume_crawler.config import mask_proxy
from resume_crawler.fetcher import FetchPool
from resume_crawler.models import FetchPoolConfig

logger = logging.getLogger(__name__)


class _RotatingPool:
    """Round-robin over ``fetcher_count`` fetchers, each bound to the next proxy in the set.

    A failed fetcher stays current so ``restart_fetcher`` replaces the one that failed.
    """

    def __init__(self, config: FetchPoolConfig, *, sleep: Callable[[float], None] = time.sleep):
        self.config = config
        self._sleep = sleep
        self._proxy_cursor = 0
        self._current = 0
        self._last_request_at: float | None = None

    def _next_proxy(self) -> str | None:
        if not self.config.proxies:
            return None
        proxy = self.config.proxies[self._proxy_cursor % len(self.config.proxies)]
        self._proxy_cursor += 1
        return proxy

    def _wait_turn(self) -> None:
        if self._last_request_at is not None and self.config.wait_seconds > 0:
            remaining = self.config.wait_seconds - (time.monotonic() - self._last_request_at)
            if remaining > 0:
                self._sleep(remaining)
        self._last_request_at = time.monotonic()

    def _advance(self, size: int) -> None:
        self._current = (self._current + 1) % size


class HttpxFetchPool(_RotatingPool):
    def __init__(
        self,
        config: FetchPoolConfig,
        *,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(config, sleep=sleep)
        self._transport = transport
        self._clients = [self._open_client() for _ in range(config.fetcher_count)]

    def _open_client(self) -> httpx.Client:
        proxy = self._next_proxy()
        kwargs: dict[str, Any] = {
            "timeout": self.config.request_timeout_seconds,
            "headers": {"User-Agent": self.config.user_agent},
            "follow_redirects": True,
        }
        if self._transport is not None:
            kwargs["transport"] = self._transport
        elif proxy:
            kwargs["proxy"] = proxy
        logger.debug("opening http fetcher via %s", mask_proxy(proxy) if proxy else "direct connection")
        return httpx.Client(**kwargs)

    def get_page(self, url: str) -> str:
        self._wait_turn()
        response = self._clients[self._current].get(url)
        response.raise_for_status()
        self._advance(len(self._clients))
        return response.text

    def restart_fetcher(self) -> None:
        self._clients[self._current].close()
        self._clients[self._current] = self._open_client()

    def close_all(self) -> None:
        for client in self._clients:
            client.close()
        self._clients = []


class PlaywrightFetchPool(_RotatingPool):
    def __init__(self, config: FetchPoolConfig, *, sleep: Callable[[float], None] = time.sleep):
        from playwright.sync_api import sync_playwright

        super().__init__(config, sleep=sleep)
        self._playwright = sync_playwright().start()
        self._browsers = [self._launch() for _ in range(config.fetcher_count)]

    def _launch(self):
        proxy = self._next_proxy()
        launch_kwargs: dict[str, Any] = {"headless": True}
        if proxy:
            parts = urlsplit(proxy)
            server = f"{parts.scheme}://{parts.hostname}"
            if parts.port:
                server = f"{server}:{parts.port}"
            launch_kwargs["proxy"] = {"server": server}
            if parts.username:
                launch_kwargs["proxy"]["username"] = parts.username
                launch_kwargs["proxy"]["password"] = parts.password or ""
        logger.debug("launching browser via %s", mask_proxy(proxy) if proxy else "direct connection")
        browser = self._playwright.chromium.launch(**launch_kwargs)
        context = browser.new_context(user_agent=self.config.user_agent)
        return browser, context

    def get_page(self, url: str) -> str:
        self._wait_turn()
        _, context = self._browsers[self._current]
        page = context.new_page()
        try:
            response = page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=self.config.request_timeout_seconds * 1000,
            )
            if response is not None and not response.ok:
                raise RuntimeError(f"HTTP {response.status} for {url}")
            html = page.content()
        finally:
            page.close()
        self._advance(len(self._browsers))
        return html

    def _close_browser(self, browser, context) -> None:
        try:
            context.close()
            browser.close()
        except Exception as exc:  # pragma: no cover - depends on browser state
            logger.debug("browser already gone: %s", exc)

    def restart_fetcher(self) -> None:
        browser, context = self._browsers[self._current]
        self._close_browser(browser, context)
        self._browsers[self._current] = self._launch()

    def close_all(self) -> None:
        for browser, context in self._browsers:
            self._close_browser(browser, context)
        self._browsers = []
        self._playwright.stop()


def open_fetch_pool(config: FetchPoolConfig, backend: str = "httpx") -> FetchPool:
    if backend == "playwright":
        return PlaywrightFetchPool(config)
    if backend == "httpx":
        return HttpxFetchPool(config)
    raise ValueError(f"unknown fetch backend: {backend}")
