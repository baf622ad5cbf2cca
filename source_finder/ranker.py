"""Filtering, ranking and response assembly."""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .config import DEBUG_FAILED_CAP, DEFAULT_MAX_RESULTS, MAX_RESULTS
from .models import ScoredResult, SearchResponse, TrustScope


def clamp_limit(value: object, default: int = DEFAULT_MAX_RESULTS, ceiling: int = MAX_RESULTS) -> int:
    """Parse a requested result count; unparseable or non-positive means default."""
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        n = default
    if n <= 0:
        n = default
    return min(n, ceiling)


def split_verdicts(scored: Iterable[Optional[ScoredResult]]) -> Tuple[List[ScoredResult], List[ScoredResult]]:
    """(credible, rejected), dropping the None slots of failed candidates."""
    credible, rejected = [], []
    for r in scored:
        if r is None:
            continue
        (credible if r.is_credible else rejected).append(r)
    return credible, rejected


def rank_results(scored: Iterable[Optional[ScoredResult]], limit: int) -> List[ScoredResult]:
    """Credible results by descending total; ties keep pool order."""
    credible, _ = split_verdicts(scored)
    return sorted(credible, key=lambda r: r.score_total, reverse=True)[:max(limit, 0)]


def assemble_response(
    query: str,
    scope: TrustScope,
    source_tier: str,
    scored: List[Optional[ScoredResult]],
    limit: int,
    debug: bool = False,
) -> SearchResponse:
    credible, rejected = split_verdicts(scored)
    resp = SearchResponse(
        query=query, scope=scope, source_tier=source_tier, results=rank_results(credible, limit)
    )
    if debug:
        resp.debug_failed = sorted(rejected, key=lambda r: r.score_total, reverse=True)[:DEBUG_FAILED_CAP]
    return resp
