from __future__ import annotations

import re
from typing import Any, Mapping, Protocol

from bs4 import BeautifulSoup, Tag

from resume_crawler.errors import ResumeParseError
from resume_crawler.models import ResultRecord


class ResumeParser(Protocol):
    def parse(self, content: str, source_url: str, metadata: Mapping[str, Any]) -> list[ResultRecord]: ...


def _clean_spaces(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def _text(node: Tag | None, selector: str) -> str | None:
    if node is None:
        return None
    found = node.select_one(selector)
    if found is None:
        return None
    return _clean_spaces(found.get_text(" ", strip=True)) or None


class IndeedResumeParser:
    """Parses an Indeed resume detail page.

    One record is produced per work-experience entry, each carrying the
    profile-level fields. A resume without work history yields a single
    profile record.
    """

    BODY_SELECTOR = "#resume_body, #resume"

    def parse(self, content: str, source_url: str, metadata: Mapping[str, Any]) -> list[ResultRecord]:
        soup = BeautifulSoup(content or "", "html.parser")
        body = soup.select_one(self.BODY_SELECTOR)
        if body is None:
            raise ResumeParseError(f"no resume body found at {source_url}")

        profile: ResultRecord = {
            "url": source_url,
            "name": _text(soup, "#resume-contact") or _text(soup, "h1"),
            "headline": _text(soup, "#headline"),
            "location": _text(soup, "#headline_location"),
            "summary": _text(body, "#res_summary"),
            "skills": _text(body, "#skills-items, .skills-content"),
            "education": self._education(body),
            **metadata,
        }

        jobs = self._work_experience(body)
        if not jobs:
            return [profile]
        return [{**profile, **job} for job in jobs]

    def _work_experience(self, body: Tag) -> list[ResultRecord]:
        jobs: list[ResultRecord] = []
        for section in body.select(".work-experience-section"):
            jobs.append(
                {
                    "job_title": _text(section, ".work_title"),
                    "company": _text(section, ".work_company .bold") or _text(section, ".work_company"),
                    "company_location": _text(section, ".work_company .location, .work_location"),
                    "job_dates": _text(section, ".work_dates"),
                    "job_description": _text(section, ".work_description"),
                }
            )
        return jobs

    def _education(self, body: Tag) -> list[dict[str, str | None]]:
        return [
            {
                "degree": _text(section, ".edu_title"),
                "school": _text(section, ".edu_school"),
                "dates": _text(section, ".edu_dates"),
            }
            for section in body.select(".education-section")
        ]
