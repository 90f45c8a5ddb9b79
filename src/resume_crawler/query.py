from __future__ import annotations

from urllib.parse import quote_plus

BASE_LISTING_URL = "https://www.indeed.com/resumes"


def build_listing_url(
    search_query: str | None,
    location: str | None,
    base_url: str = BASE_LISTING_URL,
) -> str:
    params: list[str] = []
    if search_query:
        params.append(f"q={quote_plus(search_query)}")
    if location:
        params.append(f"l={quote_plus(location)}")
    if not params:
        return base_url
    return f"{base_url}?{'&'.join(params)}"
