"""
Page fetching and metadata extraction.

`fetch_metadata()` is the only entry point the pool uses: it never raises,
degrading to host-only metadata when the page cannot be retrieved.
"""

from __future__ import annotations

import json
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup
from dateutil import parser as dateparser

from .config import FETCH_TIMEOUT_S, HEADERS, MAX_CONTENT_CHARS, READ_CHUNK_BYTES
from .errors import FetchError, FetchTimeout
from .models import PageMetadata
from .trust import host_of

logger = logging.getLogger(__name__)

PUBLISHED_META = [
    "article:published_time", "datepublished", "citation_publication_date",
    "citation_date", "dc.date", "dc.date.issued", "dcterms.issued", "date",
    "pubdate", "publish-date",
]
MODIFIED_META = [
    "article:modified_time", "og:updated_time", "datemodified",
    "dcterms.modified", "last-modified", "revised",
]
AUTHOR_META = ["author", "citation_author", "dc.creator", "article:author", "parsely-author"]
TITLE_META = ["og:title", "citation_title", "twitter:title", "dc.title"]
PUBLISHER_META = ["og:site_name", "citation_publisher", "citation_journal_title", "dc.publisher", "application-name"]

NOISE_TAGS = ["script", "style", "noscript", "svg", "template", "nav", "form", "button"]
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6", "caption", "dt"]

PRECISION_YEAR = "year"
PRECISION_MONTH = "month"
PRECISION_DAY = "day"

# Two defaults that differ in every field dateutil may fill in
_DEFAULT_A = datetime(2000, 1, 1)
_DEFAULT_B = datetime(2001, 2, 2)


@dataclass
class FetchedPage:
    url: str
    final_url: str = ""
    status_code: Optional[int] = None
    content_type: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ""
    is_pdf: bool = False


@dataclass(frozen=True)
class PageText:
    visible: str = ""
    headings: Tuple[str, ...] = ()


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def parse_partial_date(value: str) -> Optional[Tuple[datetime, str]]:
    """
    Parse a free-form date string into `(datetime, precision)`, or None.

    The string is parsed against two different defaults; fields that change
    between the two were not in the input. Missing month/day fall back to
    the start of the period and `precision` is one of PRECISION_YEAR,
    PRECISION_MONTH or PRECISION_DAY. Strings without a year are rejected.
    The calendar date is kept exactly as written (no timezone shift).
    """
    if not value or not value.strip():
        return None
    try:
        first = dateparser.parse(value.strip(), default=_DEFAULT_A)
        second = dateparser.parse(value.strip(), default=_DEFAULT_B)
    except (ValueError, OverflowError, TypeError):
        return None
    if first is None or second is None or first.year != second.year:
        return None
    if first.month != second.month:
        return first, PRECISION_YEAR
    if first.day != second.day:
        return first, PRECISION_MONTH
    return first, PRECISION_DAY


def parse_date(value: str) -> Optional[datetime]:
    """Aware UTC datetime for a date string (naive input is taken as UTC), or None."""
    parsed = parse_partial_date(value)
    if parsed is None:
        return None
    dt = parsed[0]
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def page_text(html: str) -> PageText:
    """
    Visible text and heading texts of an HTML document. Scripts, styles,
    navigation and forms are dropped first so markup never reads as prose.
    """
    if not html:
        return PageText()
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(NOISE_TAGS):
        tag.decompose()
    headings = tuple(
        h for h in (_clean(t.get_text(" ")) for t in soup.find_all(HEADING_TAGS)) if h
    )
    return PageText(visible=soup.get_text(" "), headings=headings)


def looks_like_pdf(url: str, content_type: str = "") -> bool:
    if "pdf" in (content_type or "").lower():
        return True
    try:
        return urlparse(url or "").path.lower().endswith(".pdf")
    except ValueError:
        return False


def host_only_metadata(url: str) -> PageMetadata:
    """Metadata for a page that could not be fetched."""
    return PageMetadata(url=url, publisher=host_of(url), is_pdf=looks_like_pdf(url))


def _clean(s: Any) -> str:
    if not isinstance(s, str):
        return ""
    return re.sub(r"\s+", " ", s).strip()


def _read_body(resp: requests.Response, deadline: float) -> str:
    chunks: List[bytes] = []
    size = 0
    for chunk in resp.iter_content(chunk_size=READ_CHUNK_BYTES):
        if time.monotonic() > deadline:
            raise FetchTimeout(f"Read budget exhausted for {resp.url}")
        if not chunk:
            continue
        chunks.append(chunk)
        size += len(chunk)
        if size >= MAX_CONTENT_CHARS:
            break
    raw = b"".join(chunks)
    encoding = resp.encoding or "utf-8"
    try:
        return raw.decode(encoding, errors="replace")
    except LookupError:
        return raw.decode("utf-8", errors="replace")


# -----------------------------------------------------------------------------
# Fetching
# -----------------------------------------------------------------------------
def fetch_page(session: requests.Session, url: str, timeout_s: float = FETCH_TIMEOUT_S) -> FetchedPage:
    """
    Fetch one page within a wall-clock budget.

    The response is streamed and closed as soon as the budget runs out, so a
    slow server cannot hold a worker past `timeout_s`. PDF bodies are never
    downloaded; only headers and the URL are kept.
    """
    deadline = time.monotonic() + timeout_s
    try:
        resp = session.get(url, headers=HEADERS, timeout=timeout_s, allow_redirects=True, stream=True)
    except requests.Timeout as e:
        raise FetchTimeout(f"Timed out fetching {url}: {e}") from e
    except requests.RequestException as e:
        raise FetchError(f"Fetch error for {url}: {e}") from e

    try:
        page = FetchedPage(
            url=url,
            final_url=str(resp.url or url),
            status_code=resp.status_code,
            content_type=resp.headers.get("content-type", ""),
            headers={str(k).lower(): str(v) for k, v in resp.headers.items()},
        )
        if resp.status_code >= 400:
            raise FetchError(f"HTTP {resp.status_code} for {url}")
        page.is_pdf = looks_like_pdf(page.final_url, page.content_type) or looks_like_pdf(url)
        if not page.is_pdf:
            try:
                page.body = _read_body(resp, deadline)
            except requests.Timeout as e:
                raise FetchTimeout(f"Timed out reading {url}: {e}") from e
            except requests.RequestException as e:
                raise FetchError(f"Read error for {url}: {e}") from e
        return page
    finally:
        resp.close()


def fetch_metadata(session: requests.Session, url: str, timeout_s: float = FETCH_TIMEOUT_S) -> PageMetadata:
    """Fetch and extract; any fetch failure yields host-only metadata."""
    try:
        page = fetch_page(session, url, timeout_s)
    except FetchTimeout as e:
        logger.info(f"Fetch timed out, scoring on host only: {e}")
        return host_only_metadata(url)
    except FetchError as e:
        logger.info(f"Fetch failed, scoring on host only: {e}")
        return host_only_metadata(url)
    return extract_metadata(page)


# -----------------------------------------------------------------------------
# Extraction
# -----------------------------------------------------------------------------
def _meta_map(soup: BeautifulSoup) -> Dict[str, str]:
    """First value for every meta name/property/itemprop, lowercased keys."""
    meta: Dict[str, str] = {}
    for tag in soup.find_all("meta"):
        content = tag.get("content")
        if not content:
            continue
        for attr in ("property", "name", "itemprop", "http-equiv"):
            key = tag.get(attr)
            if key:
                meta.setdefault(str(key).strip().lower(), str(content).strip())
    return meta


def _iter_ld_objects(soup: BeautifulSoup) -> Iterator[Dict[str, Any]]:
    for sc in soup.find_all("script", attrs={"type": re.compile(r"ld\+json", re.I)}):
        raw = (sc.string or sc.get_text() or "").strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except ValueError:
            continue
        stack = [data]
        while stack:
            item = stack.pop(0)
            if isinstance(item, list):
                stack.extend(item)
            elif isinstance(item, dict):
                if isinstance(item.get("@graph"), list):
                    stack.extend(item["@graph"])
                yield item


def _ld_name(value: Any) -> str:
    if isinstance(value, str):
        return _clean(value)
    if isinstance(value, dict):
        return _clean(value.get("name"))
    if isinstance(value, list):
        names = [_ld_name(v) for v in value]
        return ", ".join(n for n in names if n)
    return ""


def _first(meta: Mapping[str, str], keys: List[str]) -> str:
    for k in keys:
        v = _clean(meta.get(k, ""))
        if v:
            return v
    return ""


def extract_metadata(page: FetchedPage) -> PageMetadata:
    url = page.url
    host = host_of(page.final_url or url) or host_of(url)

    if page.is_pdf:
        return PageMetadata(
            url=url,
            modified_date=_clean(page.headers.get("last-modified", "")),
            publisher=host,
            is_pdf=True,
        )

    html = page.body or ""
    soup = BeautifulSoup(html, "html.parser")
    meta = _meta_map(soup)
    ld = list(_iter_ld_objects(soup))

    title = ""
    if soup.title and soup.title.string:
        title = _clean(soup.title.string)
    title = title or _first(meta, TITLE_META) or next((_clean(o.get("headline")) for o in ld if o.get("headline")), "")

    author = _first(meta, AUTHOR_META)
    if author.startswith("http"):
        author = ""
    if not author:
        author = next((_ld_name(o.get("author")) for o in ld if _ld_name(o.get("author"))), "")

    published = _first(meta, PUBLISHED_META) or next(
        (_clean(o.get("datePublished")) for o in ld if _clean(o.get("datePublished"))), ""
    )
    if not published:
        time_tag = soup.find("time", attrs={"datetime": True})
        if time_tag:
            published = _clean(time_tag.get("datetime"))
    modified = _first(meta, MODIFIED_META) or next(
        (_clean(o.get("dateModified")) for o in ld if _clean(o.get("dateModified"))), ""
    )

    publisher = _first(meta, PUBLISHER_META) or next(
        (_ld_name(o.get("publisher")) for o in ld if _ld_name(o.get("publisher"))), ""
    )

    return PageMetadata(
        url=url,
        title=title,
        author=author,
        published_date=published,
        modified_date=modified,
        publisher=publisher or host,
        raw_content=html[:MAX_CONTENT_CHARS],
        is_pdf=False,
    )
