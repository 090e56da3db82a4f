"""
Cosense URL Builders

Pure functions mapping Cosense API and web routes to absolute URLs. Every
path segment is percent-encoded on its own, so titles containing "/", "?" or
spaces stay inside their segment.
"""

from __future__ import annotations

from typing import Dict, Iterable, Mapping, Optional, Union
from urllib.parse import quote, urlencode

# Characters encodeURIComponent leaves alone on top of the RFC 3986 unreserved set
_SEGMENT_SAFE = "!'()*"

QueryValue = Union[str, int]


def encode_segment(segment: str) -> str:
    return quote(segment, safe=_SEGMENT_SAFE)


def build_url(
    origin: str,
    segments: Iterable[str],
    query: Optional[Mapping[str, QueryValue]] = None,
) -> str:
    """
    Join ``origin`` with percent-encoded ``segments`` and an optional query.

    >>> build_url("https://scrapbox.io", ["api", "pages", "my project", "a/b"])
    'https://scrapbox.io/api/pages/my%20project/a%2Fb'
    """
    path = "/".join(encode_segment(str(s)) for s in segments)
    url = f"{origin.rstrip('/')}/{path}"
    if query:
        url += "?" + urlencode({k: str(v) for k, v in query.items()})
    return url


SEARCH_DEFAULTS: Dict[str, QueryValue] = {
    "skip": 0,
    "sort": "pageRank",
    "filterType": "",
    "filterValue": "",
    "limit": 100,
    "field": "lines",
}


class Routes:
    """URL factory bound to one Cosense origin."""

    def __init__(self, origin: str = "https://scrapbox.io") -> None:
        self.origin = origin.rstrip("/")

    # ------------------------------------------------------------------
    # API routes
    # ------------------------------------------------------------------

    def projects(self) -> str:
        return build_url(self.origin, ["api", "projects"])

    def project(self, project: str) -> str:
        return build_url(self.origin, ["api", "projects", project])

    def pages(self, project: str) -> str:
        return build_url(self.origin, ["api", "pages", project])

    def page(self, project: str, title: str) -> str:
        return build_url(self.origin, ["api", "pages", project, title])

    def page_text(self, project: str, title: str) -> str:
        return build_url(self.origin, ["api", "pages", project, title, "text"])

    def smart_context(self, project: str, page_id: str, hops: int) -> str:
        return build_url(
            self.origin,
            ["api", "smart-context", f"export-{int(hops)}hop-links", f"{project}.txt"],
            {"pageId": page_id},
        )

    def search(
        self,
        project: str,
        query: str,
        skip: Optional[int] = None,
        sort: Optional[str] = None,
        filter_type: Optional[str] = None,
        filter_value: Optional[str] = None,
        limit: Optional[int] = None,
        field: Optional[str] = None,
    ) -> str:
        overrides = {
            "skip": skip,
            "sort": sort,
            "filterType": filter_type,
            "filterValue": filter_value,
            "limit": limit,
            "field": field,
        }
        params: Dict[str, QueryValue] = {"q": query}
        for key, default in SEARCH_DEFAULTS.items():
            value = overrides[key]
            params[key] = default if value is None else value
        return build_url(
            self.origin,
            ["api", "pages", project, "search", "query"],
            params,
        )

    # ------------------------------------------------------------------
    # Web routes
    # ------------------------------------------------------------------

    def root(self) -> str:
        return self.origin + "/"

    def web_page(self, project: str, title: str) -> str:
        return build_url(self.origin, [project, title])

    def login(self) -> str:
        return build_url(self.origin, ["login", "google"])
