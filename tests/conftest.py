"""
Shared fixtures: fake `requests` sessions/responses and metadata factories.
No test touches the network.
"""
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from source_finder.config import Settings  # noqa: E402
from source_finder.models import Candidate, PageMetadata  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def months_ago(months: int) -> str:
    return (NOW - timedelta(days=30 * months)).isoformat()


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(
        self,
        status_code: int = 200,
        body: Any = "",
        headers: Optional[Dict[str, str]] = None,
        url: str = "",
        json_data: Any = None,
        encoding: Optional[str] = "utf-8",
        chunk_error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self.url = url
        self.headers = CaseInsensitiveDict(headers or {"content-type": "text/html; charset=utf-8"})
        self.encoding = encoding
        self._body = body.encode("utf-8") if isinstance(body, str) else (body or b"")
        self._json = json_data
        self._chunk_error = chunk_error
        self.closed = False

    @property
    def text(self) -> str:
        return self._body.decode("utf-8", errors="replace")

    @property
    def content(self) -> bytes:
        return self._body

    def json(self):
        if self._json is None:
            raise ValueError("No JSON object could be decoded")
        return self._json

    def iter_content(self, chunk_size: int = 1):
        if self._chunk_error:
            raise self._chunk_error
        for i in range(0, len(self._body), chunk_size):
            yield self._body[i:i + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """
    Routes GETs by URL prefix. A route value may be a FakeResponse, an
    exception instance (raised), or a callable(url, params) -> FakeResponse.
    """

    def __init__(self, routes: Optional[Dict[str, Any]] = None):
        self.routes = routes or {}
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def get(self, url, params=None, headers=None, timeout=None, allow_redirects=True, stream=False):
        self.calls.append({"url": url, "params": params, "timeout": timeout, "stream": stream})
        for prefix in sorted(self.routes, key=len, reverse=True):
            if url.startswith(prefix):
                route = self.routes[prefix]
                if isinstance(route, Exception):
                    raise route
                if callable(route) and not isinstance(route, FakeResponse):
                    return route(url, params)
                if not route.url:
                    route.url = url
                return route
        raise requests.ConnectionError(f"no route for {url}")

    def close(self) -> None:
        self.closed = True


def make_meta(**overrides) -> PageMetadata:
    data = dict(
        url="https://example.org/page",
        title="",
        author="",
        published_date="",
        modified_date="",
        publisher="example.org",
        raw_content="",
        is_pdf=False,
    )
    data.update(overrides)
    return PageMetadata(**data)


CITED_HTML = """
<html><head><title>Study of Things - National Institutes</title></head>
<body>
<p>We report our research methods and findings.</p>
<a href="https://doi.org/10.1000/abc123">one</a>
<a href="https://doi.org/10.1000/def456">two</a>
<a href="https://doi.org/10.1000/ghi789">three</a>
<h2>References</h2>
</body></html>
"""

OPINION_HTML = """
<html><head><title>My Take</title></head>
<body><p>This opinion piece says everything is fine.</p></body></html>
"""


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def settings():
    return Settings(cse_key="", cse_cx="", workers=4, pool_cap=20, fetch_timeout_s=5, provider_timeout_s=5)


@pytest.fixture
def candidate():
    return Candidate(title="Candidate title", url="https://example.org/page")
