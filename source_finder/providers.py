"""
Discovery providers.

Each adapter turns a free-text query into `(title, url)` candidates and
raises `ProviderError` on any failure. The primary provider is a web-search
API that needs credentials; the fallbacks are keyless scholarly/reference
services queried in parallel by `search_fallbacks()`, where a failing
provider simply contributes nothing.
"""

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import requests

from .config import (
    FALLBACK_ROWS,
    JSON_HEADERS,
    PRIMARY_RESULT_COUNT,
    Settings,
)
from .errors import CredentialsMissing, ProviderError, RateLimited
from .models import Candidate

logger = logging.getLogger(__name__)

CSE_ENDPOINT = "https://www.googleapis.com/customsearch/v1"
CROSSREF_ENDPOINT = "https://api.crossref.org/works"
OPENALEX_ENDPOINT = "https://api.openalex.org/works"
WIKIPEDIA_ENDPOINT = "https://en.wikipedia.org/w/api.php"
PUBMED_ESEARCH_ENDPOINT = "https://eutils.ncbi.nlm.nih.gov/entrez/eutils/esearch.fcgi"
PUBMED_RECORD_URL = "https://pubmed.ncbi.nlm.nih.gov/{pmid}/"
DOI_URL = "https://doi.org/{doi}"

RATE_LIMIT_REASONS = ("ratelimitexceeded", "dailylimitexceeded", "userratelimitexceeded", "quotaexceeded")

# Links worth keeping from an encyclopedia article's reference list
CREDIBLE_LINK = re.compile(
    r"doi\.org|\.gov(?:\.|/|$)|\.edu(?:\.|/|$)|\.int(?:/|$)|"
    r"who\.int|un\.org|worldbank\.org|unesco\.org|unicef\.org|nih\.gov|oecd\.org|imf\.org",
    re.IGNORECASE,
)

SessionFactory = Callable[[], requests.Session]
Provider = Callable[[requests.Session, str, Settings], List[Candidate]]


# -----------------------------------------------------------------------------
# HTTP helper
# -----------------------------------------------------------------------------
def _get_json(
    session: requests.Session,
    provider: str,
    url: str,
    params: Dict[str, Any],
    timeout_s: float,
) -> Dict[str, Any]:
    try:
        resp = session.get(url, params=params, headers=JSON_HEADERS, timeout=timeout_s)
    except requests.Timeout as e:
        raise ProviderError(provider, f"timed out after {timeout_s}s") from e
    except requests.RequestException as e:
        raise ProviderError(provider, f"network error: {e}") from e

    if resp.status_code == 429:
        raise RateLimited(provider, "rate limit exhausted (HTTP 429)")
    if resp.status_code >= 400:
        body = (resp.text or "").lower()
        if resp.status_code == 403 and any(r in body for r in RATE_LIMIT_REASONS):
            raise RateLimited(provider, "quota exceeded (HTTP 403)")
        raise ProviderError(provider, f"HTTP {resp.status_code}")

    try:
        data = resp.json()
    except ValueError as e:
        raise ProviderError(provider, "invalid JSON response") from e
    if not isinstance(data, dict):
        raise ProviderError(provider, "unexpected response shape")
    return data


def _first_str(value: Any) -> str:
    if isinstance(value, list):
        value = value[0] if value else ""
    return value.strip() if isinstance(value, str) else ""


def _dig(obj: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _doi_url(doi: str) -> str:
    doi = (doi or "").strip()
    if not doi:
        return ""
    if doi.lower().startswith("http"):
        return doi
    return DOI_URL.format(doi=doi)


# -----------------------------------------------------------------------------
# Primary provider
# -----------------------------------------------------------------------------
def search_primary(session: requests.Session, query: str, settings: Settings) -> List[Candidate]:
    """Google Programmable Search (CSE); needs CSE_KEY and CSE_CX."""
    if not settings.has_primary_credentials:
        raise CredentialsMissing("cse", "missing CSE_KEY or CSE_CX")
    data = _get_json(
        session, "cse", CSE_ENDPOINT,
        {"key": settings.cse_key, "cx": settings.cse_cx, "q": query, "num": str(PRIMARY_RESULT_COUNT)},
        settings.provider_timeout_s,
    )
    out = []
    for item in data.get("items") or []:
        url = _first_str(_dig(item, "link"))
        if not url:
            continue
        out.append(Candidate(title=_first_str(_dig(item, "title")) or url, url=url))
    return out[:PRIMARY_RESULT_COUNT]


# -----------------------------------------------------------------------------
# Fallback providers
# -----------------------------------------------------------------------------
def search_works_index(session: requests.Session, query: str, settings: Settings) -> List[Candidate]:
    """Crossref works search; URL from the record link or its DOI."""
    params: Dict[str, Any] = {"query": query, "rows": str(FALLBACK_ROWS)}
    if settings.contact_email:
        params["mailto"] = settings.contact_email
    data = _get_json(session, "crossref", CROSSREF_ENDPOINT, params, settings.provider_timeout_s)
    out = []
    for item in _dig(data, "message", "items") or []:
        url = _first_str(_dig(item, "URL")) or _doi_url(_first_str(_dig(item, "DOI")))
        if not url:
            continue
        out.append(Candidate(title=_first_str(_dig(item, "title")) or url, url=url))
    return out


def search_open_works(session: requests.Session, query: str, settings: Settings) -> List[Candidate]:
    """OpenAlex works search; prefers the hosted document, then landing page, then DOI."""
    params: Dict[str, Any] = {"search": query, "per_page": str(FALLBACK_ROWS)}
    if settings.contact_email:
        params["mailto"] = settings.contact_email
    data = _get_json(session, "openalex", OPENALEX_ENDPOINT, params, settings.provider_timeout_s)
    out = []
    for item in data.get("results") or []:
        url = (
            _first_str(_dig(item, "primary_location", "source", "hosted_document", "url"))
            or _first_str(_dig(item, "primary_location", "landing_page_url"))
            or _first_str(_dig(item, "primary_location", "pdf_url"))
            or _doi_url(_first_str(_dig(item, "doi")))
        )
        if not url:
            continue
        out.append(Candidate(title=_first_str(_dig(item, "title")) or url, url=url))
    return out


def search_reference_links(session: requests.Session, query: str, settings: Settings) -> List[Candidate]:
    """
    Best-matching Wikipedia article's external links, keeping only DOI
    links and government/education/intergovernmental hosts.
    """
    found = _get_json(
        session, "wikipedia", WIKIPEDIA_ENDPOINT,
        {"action": "query", "list": "search", "format": "json", "srsearch": query, "srlimit": "1"},
        settings.provider_timeout_s,
    )
    hits = _dig(found, "query", "search") or []
    page_id = _dig(hits[0], "pageid") if hits else None
    if not page_id:
        return []

    parsed = _get_json(
        session, "wikipedia", WIKIPEDIA_ENDPOINT,
        {"action": "parse", "pageid": str(page_id), "prop": "externallinks", "format": "json"},
        settings.provider_timeout_s,
    )
    out = []
    for link in _dig(parsed, "parse", "externallinks") or []:
        if isinstance(link, dict):
            link = link.get("*") or link.get("url") or ""
        if not isinstance(link, str) or not link.startswith(("http://", "https://", "//")):
            continue
        if link.startswith("//"):
            link = "https:" + link
        if CREDIBLE_LINK.search(link):
            out.append(Candidate(title=link, url=link))
    return out


def search_biomedical_ids(session: requests.Session, query: str, settings: Settings) -> List[Candidate]:
    """PubMed E-utilities search; each PMID maps to its canonical record page."""
    params: Dict[str, Any] = {
        "db": "pubmed", "term": query, "retmode": "json",
        "retmax": str(FALLBACK_ROWS), "tool": "source-finder",
    }
    if settings.contact_email:
        params["email"] = settings.contact_email
    data = _get_json(session, "pubmed", PUBMED_ESEARCH_ENDPOINT, params, settings.provider_timeout_s)
    out = []
    for pmid in _dig(data, "esearchresult", "idlist") or []:
        pmid = str(pmid).strip()
        if not pmid.isdigit():
            continue
        out.append(Candidate(title=f"PubMed record {pmid}", url=PUBMED_RECORD_URL.format(pmid=pmid)))
    return out


FALLBACK_PROVIDERS: Tuple[Tuple[str, Provider], ...] = (
    ("crossref", search_works_index),
    ("openalex", search_open_works),
    ("wikipedia", search_reference_links),
    ("pubmed", search_biomedical_ids),
)


def _run_provider(name: str, provider: Provider, session_factory: SessionFactory, query: str, settings: Settings) -> List[Candidate]:
    session = None
    try:
        session = session_factory()
        found = provider(session, query, settings)
        logger.info(f"Fallback provider {name}: {len(found)} candidate(s)")
        return found
    except ProviderError as e:
        logger.warning(f"Fallback provider failed: {e}")
        return []
    except Exception as e:
        logger.warning(f"Fallback provider {name} returned an unusable response: {e}")
        return []
    finally:
        if session is not None:
            session.close()


def search_fallbacks(
    query: str,
    settings: Settings,
    session_factory: SessionFactory = requests.Session,
    providers: Optional[Sequence[Tuple[str, Provider]]] = None,
) -> List[Candidate]:
    """
    Run every fallback provider concurrently and concatenate their candidates
    in provider order. A provider failure contributes an empty list.
    """
    providers = list(FALLBACK_PROVIDERS if providers is None else providers)
    if not providers:
        return []
    with ThreadPoolExecutor(max_workers=len(providers)) as pool:
        futures = [
            pool.submit(_run_provider, name, fn, session_factory, query, settings)
            for name, fn in providers
        ]
        batches = [f.result() for f in futures]
    return [c for batch in batches for c in batch]
