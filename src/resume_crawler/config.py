from __future__ import annotations

import os
from typing import Literal, Mapping, Sequence
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from resume_crawler.models import ControllerBinding, CrawlJob, FetchPoolConfig

RUN_REQUIRED_ENVS_ANY = ("SEARCH_QUERY", "SEARCH_LOCATION")


class Settings(BaseModel):
    search_query: str | None = None
    location: str | None = None
    proxies: tuple[str, ...] = ()
    wait_seconds: float = Field(default=0.0, ge=0.0)
    fetcher_count: int = Field(default=1, ge=1)
    fetch_backend: Literal["httpx", "playwright"] = "httpx"
    controller_url: str = ""
    selector_id: str = ""
    max_listing_pages: int = Field(default=100, ge=1)
    request_timeout_seconds: float = Field(default=20.0, gt=0.0)
    user_agent: str = "resume-crawler/0.1"
    log_level: str = "INFO"

    @field_validator("controller_url")
    @classmethod
    def _validate_controller_url(cls, value: str) -> str:
        if value and not value.startswith(("http://", "https://")):
            raise ValueError("CONTROLLER_URL must use http:// or https://")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown LOG_LEVEL: {value}")
        return level

    @model_validator(mode="after")
    def _controller_needs_selector(self) -> "Settings":
        if self.controller_url and not self.selector_id:
            raise ValueError("SELECTOR_ID is required when CONTROLLER_URL is set")
        return self

    def to_job(self) -> CrawlJob:
        controller = None
        if self.controller_url:
            controller = ControllerBinding(url=self.controller_url, selector_id=self.selector_id)
        return CrawlJob(
            search_query=self.search_query or None,
            location=self.location or None,
            pool=FetchPoolConfig(
                proxies=self.proxies,
                wait_seconds=self.wait_seconds,
                fetcher_count=self.fetcher_count,
                request_timeout_seconds=self.request_timeout_seconds,
                user_agent=self.user_agent,
            ),
            controller=controller,
            max_listing_pages=self.max_listing_pages,
        )


def _env_value(environ: Mapping[str, str], key: str) -> str:
    return environ.get(key, "").strip()


def parse_csv(value: str | None) -> tuple[str, ...]:
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


def missing_envs(required: Sequence[str], environ: Mapping[str, str] | None = None) -> list[str]:
    source = os.environ if environ is None else environ
    return [key for key in required if not _env_value(source, key)]


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    source = os.environ if environ is None else environ
    try:
        payload = {
            "search_query": _env_value(source, "SEARCH_QUERY") or None,
            "location": _env_value(source, "SEARCH_LOCATION") or None,
            "proxies": parse_csv(_env_value(source, "PROXIES_CSV")),
            "wait_seconds": float(_env_value(source, "WAIT_TIME_SECONDS") or "0"),
            "fetcher_count": int(_env_value(source, "FETCHER_COUNT") or "1"),
            "fetch_backend": _env_value(source, "FETCH_BACKEND") or "httpx",
            "controller_url": _env_value(source, "CONTROLLER_URL"),
            "selector_id": _env_value(source, "SELECTOR_ID"),
            "max_listing_pages": int(_env_value(source, "MAX_LISTING_PAGES") or "100"),
            "request_timeout_seconds": float(_env_value(source, "REQUEST_TIMEOUT_SECONDS") or "20"),
            "user_agent": _env_value(source, "USER_AGENT") or "resume-crawler/0.1",
            "log_level": _env_value(source, "LOG_LEVEL") or "INFO",
        }
        return Settings(**payload)
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc


def mask_proxy(proxy: str) -> str:
    parts = urlsplit(proxy)
    if not parts.password:
        return proxy
    netloc = f"{parts.username}:***@{parts.hostname}"
    if parts.port:
        netloc = f"{netloc}:{parts.port}"
    return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))
