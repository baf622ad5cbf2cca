"""
Host Trust Classifier.

Curated domain tables plus suffix rules decide whether a host is admitted
under a TrustScope and which tier it belongs to. Tables are wrapped in an
immutable `TrustTables` value and passed in explicitly, so callers (and
tests) can swap them without touching module state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional
from urllib.parse import urlparse

import tldextract

from .models import TrustScope

logger = logging.getLogger(__name__)

# Bundled public-suffix snapshot only; classification never touches the network.
_SUFFIXES = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)

INSTITUTIONAL_TLDS = ("gov", "edu", "int")
GOVERNMENT_SECOND_LEVEL = "gov"

TIER_SUFFIX = "institutional-suffix"
TIER_CORE = "core-institution"
TIER_SCHOLARLY = "scholarly-index"
TIER_PUBLISHER = "major-publisher"

# Government and intergovernmental bodies
CORE_INSTITUTIONS = frozenset({
    "who.int", "un.org", "worldbank.org", "unesco.org", "unicef.org",
    "oecd.org", "imf.org", "europa.eu", "ilo.org", "fao.org", "wto.org",
    "nih.gov", "ncbi.nlm.nih.gov", "cdc.gov", "census.gov", "bls.gov",
    "nasa.gov", "noaa.gov", "fda.gov", "ons.gov.uk", "abs.gov.au",
    "statcan.gc.ca", "pids.gov.ph", "psa.gov.ph", "ched.gov.ph",
    "dost.gov.ph", "dict.gov.ph",
})

# Reference and identifier-resolution services
SCHOLARLY_INDEXES = frozenset({
    "doi.org", "crossref.org", "openalex.org", "pubmed.ncbi.nlm.nih.gov",
    "europepmc.org", "arxiv.org", "biorxiv.org", "medrxiv.org", "jstor.org",
    "semanticscholar.org", "ssrn.com", "doaj.org", "core.ac.uk", "zenodo.org",
    "osf.io", "scholar.archive.org", "repec.org",
})

# Academic and journal publishers
MAJOR_PUBLISHERS = frozenset({
    "nature.com", "science.org", "sciencedirect.com", "elsevier.com",
    "springer.com", "wiley.com", "tandfonline.com", "sagepub.com",
    "cambridge.org", "oup.com", "thelancet.com", "bmj.com", "nejm.org",
    "jamanetwork.com", "plos.org", "frontiersin.org", "mdpi.com", "cell.com",
    "pnas.org", "ieee.org", "acm.org", "annualreviews.org", "aps.org",
    "acs.org", "iop.org",
})


@dataclass(frozen=True)
class TrustTables:
    core: FrozenSet[str] = CORE_INSTITUTIONS
    scholarly: FrozenSet[str] = SCHOLARLY_INDEXES
    publishers: FrozenSet[str] = MAJOR_PUBLISHERS

    @classmethod
    def from_iterables(
        cls,
        core: Iterable[str] = (),
        scholarly: Iterable[str] = (),
        publishers: Iterable[str] = (),
    ) -> "TrustTables":
        def _norm(entries: Iterable[str]) -> FrozenSet[str]:
            return frozenset(normalize_host(e) for e in entries if e and e.strip())
        return cls(core=_norm(core), scholarly=_norm(scholarly), publishers=_norm(publishers))


DEFAULT_TABLES = TrustTables()


def normalize_host(host: str) -> str:
    """Lowercase, drop a trailing dot and a leading `www.`."""
    h = (host or "").strip().lower().rstrip(".")
    if h.startswith("www."):
        h = h[4:]
    return h


def host_of(url: str) -> str:
    """Normalized hostname of a URL, or "" when the URL cannot be parsed."""
    try:
        return normalize_host(urlparse((url or "").strip()).hostname or "")
    except ValueError:
        return ""


def matches_entry(host: str, entry: str) -> bool:
    """Host equals the entry or is a subdomain of it (whole labels only)."""
    if not host or not entry:
        return False
    return host == entry or host.endswith("." + entry)


def matches_any(host: str, entries: Iterable[str]) -> bool:
    return any(matches_entry(host, e) for e in entries)


def has_institutional_suffix(host: str) -> bool:
    """
    True for .gov/.edu/.int hosts and national `gov.<cc>` suffixes
    (e.g. psa.gov.ph, ons.gov.uk), including the bare suffix itself (gov.uk).
    """
    h = normalize_host(host)
    if not h or "." not in h:
        return False
    if h.rsplit(".", 1)[-1] in INSTITUTIONAL_TLDS:
        return True
    try:
        ext = _SUFFIXES(h)
    except Exception as e:
        logger.debug(f"Suffix lookup failed for {h!r}: {e}")
        return False
    labels = ext.suffix.split(".") if ext.suffix else []
    return (
        len(labels) == 2
        and labels[0] == GOVERNMENT_SECOND_LEVEL
        and len(labels[1]) == 2
    )


def trust_tier(host: str, tables: TrustTables = DEFAULT_TABLES) -> Optional[str]:
    """Most authoritative tier a host belongs to, or None."""
    h = normalize_host(host)
    if not h:
        return None
    if has_institutional_suffix(h):
        return TIER_SUFFIX
    if matches_any(h, tables.core):
        return TIER_CORE
    if matches_any(h, tables.scholarly):
        return TIER_SCHOLARLY
    if matches_any(h, tables.publishers):
        return TIER_PUBLISHER
    return None


def is_trusted(host: str, scope: TrustScope, tables: TrustTables = DEFAULT_TABLES) -> bool:
    """Whether a host is admitted under the given scope."""
    if scope == TrustScope.WEB:
        return True
    h = normalize_host(host)
    if has_institutional_suffix(h):
        return True
    if matches_any(h, tables.core):
        return True
    if scope == TrustScope.STRICT:
        return False
    return matches_any(h, tables.scholarly) or matches_any(h, tables.publishers)


def is_trusted_url(url: str, scope: TrustScope, tables: TrustTables = DEFAULT_TABLES) -> bool:
    if scope == TrustScope.WEB:
        return True
    return is_trusted(host_of(url), scope, tables)
