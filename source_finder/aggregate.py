"""Candidate aggregation: dedup by URL, host prefilter, pool cap, tier cascade."""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Tuple

import requests

from .config import FALLBACK_TIER, POOL_CAP, PRIMARY_TIER, Settings
from .errors import ProviderError
from .models import Candidate, TrustScope
from .providers import SessionFactory, search_fallbacks, search_primary
from .trust import DEFAULT_TABLES, TrustTables, is_trusted_url

logger = logging.getLogger(__name__)

PrimarySearch = Callable[[requests.Session, str, Settings], List[Candidate]]
FallbackSearch = Callable[[str, Settings, SessionFactory], List[Candidate]]


def dedupe_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """One entry per exact URL; the first title seen wins."""
    seen = set()
    out = []
    for c in candidates:
        if not c.url or c.url in seen:
            continue
        seen.add(c.url)
        out.append(c)
    return out


def prefilter_candidates(
    candidates: Iterable[Candidate],
    scope: TrustScope,
    tables: TrustTables = DEFAULT_TABLES,
) -> List[Candidate]:
    if scope == TrustScope.WEB:
        return list(candidates)
    return [c for c in candidates if is_trusted_url(c.url, scope, tables)]


def build_pool(
    candidates: Iterable[Candidate],
    scope: TrustScope,
    cap: int = POOL_CAP,
    tables: TrustTables = DEFAULT_TABLES,
) -> List[Candidate]:
    """Dedup, prefilter, then cap before anything is fetched."""
    return prefilter_candidates(dedupe_candidates(candidates), scope, tables)[:max(cap, 0)]


def primary_pool(
    query: str,
    scope: TrustScope,
    settings: Settings,
    session_factory: SessionFactory = requests.Session,
    tables: TrustTables = DEFAULT_TABLES,
    primary: PrimarySearch = search_primary,
) -> List[Candidate]:
    session = session_factory()
    try:
        found = primary(session, query, settings)
    except ProviderError as e:
        logger.warning(f"Primary provider failed, using fallbacks: {e}")
        return []
    finally:
        session.close()
    pool = build_pool(found, scope, settings.pool_cap, tables)
    logger.info(f"Primary provider: {len(found)} hit(s), {len(pool)} after prefilter")
    return pool


def fallback_pool(
    query: str,
    scope: TrustScope,
    settings: Settings,
    session_factory: SessionFactory = requests.Session,
    tables: TrustTables = DEFAULT_TABLES,
    fallback: FallbackSearch = search_fallbacks,
) -> List[Candidate]:
    found = fallback(query, settings, session_factory)
    pool = build_pool(found, scope, settings.pool_cap, tables)
    logger.info(f"Fallback providers: {len(found)} hit(s), {len(pool)} after prefilter")
    return pool


def gather_candidates(
    query: str,
    scope: TrustScope,
    settings: Settings,
    session_factory: SessionFactory = requests.Session,
    tables: TrustTables = DEFAULT_TABLES,
    primary: PrimarySearch = search_primary,
    fallback: FallbackSearch = search_fallbacks,
) -> Tuple[str, List[Candidate]]:
    """
    Capped candidate pool plus the name of the tier that supplied it. The
    fallback cascade runs only when the primary pool is empty.
    """
    pool = primary_pool(query, scope, settings, session_factory, tables, primary)
    if pool:
        return PRIMARY_TIER, pool
    return FALLBACK_TIER, fallback_pool(query, scope, settings, session_factory, tables, fallback)
