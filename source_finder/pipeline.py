"""
End-to-end search: discover -> aggregate -> fetch/score pool -> rank.

`handle_request()` is the boundary an HTTP layer calls with raw query
parameters; it returns `(status, payload)` and never raises.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Tuple

import requests

from .aggregate import FallbackSearch, PrimarySearch, fallback_pool, gather_candidates
from .config import DEFAULT_MAX_RESULTS, FALLBACK_TIER, PRIMARY_TIER, TRUE_VALUES, Settings, load_settings
from .errors import RequestValidationError
from .extract import fetch_metadata
from .models import (
    Candidate,
    ScoredResult,
    SearchRequest,
    SearchResponse,
    TrustScope,
    response_to_dict,
)
from .pool import run_pool
from .providers import SessionFactory, search_fallbacks, search_primary
from .ranker import assemble_response, clamp_limit, split_verdicts
from .scoring import score_candidate
from .trust import DEFAULT_TABLES, TrustTables

logger = logging.getLogger(__name__)


def analyze_candidate(
    candidate: Candidate,
    session: requests.Session,
    settings: Settings,
    tables: TrustTables = DEFAULT_TABLES,
    now: Optional[datetime] = None,
) -> ScoredResult:
    """Fetch, extract, score and cite one candidate."""
    meta = fetch_metadata(session, candidate.url, settings.fetch_timeout_s)
    result = score_candidate(candidate, meta, tables, now)
    logger.debug(f"{candidate.url} -> {result.verdict.value} ({result.score_total})")
    return result


def score_pool(
    pool: List[Candidate],
    settings: Settings,
    session_factory: SessionFactory = requests.Session,
    tables: TrustTables = DEFAULT_TABLES,
    now: Optional[datetime] = None,
) -> List[Optional[ScoredResult]]:
    return run_pool(
        pool,
        lambda c, session: analyze_candidate(c, session, settings, tables, now),
        workers=settings.workers,
        session_factory=session_factory,
    )


def search_sources(
    request: SearchRequest,
    settings: Optional[Settings] = None,
    session_factory: SessionFactory = requests.Session,
    tables: TrustTables = DEFAULT_TABLES,
    primary: PrimarySearch = search_primary,
    fallback: FallbackSearch = search_fallbacks,
    now: Optional[datetime] = None,
) -> SearchResponse:
    settings = settings or load_settings()

    tier, pool = gather_candidates(
        request.query, request.scope, settings, session_factory, tables, primary, fallback
    )
    scored = score_pool(pool, settings, session_factory, tables, now)

    if tier == PRIMARY_TIER and settings.fallback_on_no_credible and not split_verdicts(scored)[0]:
        logger.info("No credible primary results, trying fallback providers")
        fb_pool = fallback_pool(request.query, request.scope, settings, session_factory, tables, fallback)
        fb_scored = score_pool(fb_pool, settings, session_factory, tables, now)
        if split_verdicts(fb_scored)[0]:
            tier, scored = FALLBACK_TIER, fb_scored

    resp = assemble_response(request.query, request.scope, tier, scored, request.limit, request.debug)
    logger.info(
        f"Query {request.query!r}: tier={tier}, pool={len(scored)}, "
        f"credible={len(resp.results)}"
    )
    return resp


def parse_request(params: Mapping[str, Any]) -> SearchRequest:
    """Validate raw query parameters; an empty query is a client error."""
    query = str(params.get("query") or "").strip()
    if not query:
        raise RequestValidationError("query is required")
    debug = str(params.get("debug") or "").strip().lower() in TRUE_VALUES
    return SearchRequest(
        query=query,
        limit=clamp_limit(params.get("max", DEFAULT_MAX_RESULTS)),
        scope=TrustScope.parse(params.get("scope")),
        debug=debug,
    )


def handle_request(
    params: Mapping[str, Any],
    settings: Optional[Settings] = None,
    **kwargs: Any,
) -> Tuple[int, Dict[str, Any]]:
    try:
        request = parse_request(params)
    except RequestValidationError as e:
        return 400, {"error": str(e)}
    try:
        resp = search_sources(request, settings, **kwargs)
    except Exception:
        logger.exception("Search failed")
        return 500, {"error": "internal error"}
    return 200, response_to_dict(resp)
