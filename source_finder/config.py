"""
Tunable constants and environment-driven settings.

Score cutoffs and budgets live here so the evaluators never carry inline
literals. `load_settings()` reads the process environment once per request.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Scoring
# -----------------------------------------------------------------------------
MIN_SCORE = 1
PASS_SCORE = 3
TOP_SCORE = 5

CREDIBLE_TOTAL = 25
LIMITED_TOTAL = 20

RECENT_MONTHS = 18
ACCEPTABLE_MONTHS = 60
DAYS_PER_MONTH = 30

STRONG_CITATION_COUNT = 3
DOMINANCE_MIN_HITS = 2

MAX_EXPLANATIONS = 12

# -----------------------------------------------------------------------------
# Budgets
# -----------------------------------------------------------------------------
PROVIDER_TIMEOUT_S = 8.5
FETCH_TIMEOUT_S = 8.5
PRIMARY_RESULT_COUNT = 10
FALLBACK_ROWS = 15
POOL_CAP = 20
WORKER_COUNT = 4
MAX_CONTENT_CHARS = 600_000
READ_CHUNK_BYTES = 16_384

DEFAULT_MAX_RESULTS = 8
MAX_RESULTS = 12
DEBUG_FAILED_CAP = 12

# -----------------------------------------------------------------------------
# HTTP
# -----------------------------------------------------------------------------
USER_AGENT = "SourceFinder/1.0 (+research)"
HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}
JSON_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "application/json",
}

PRIMARY_TIER = "CSE"
FALLBACK_TIER = "Crossref/OpenAlex/Wikipedia/PubMed"

TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration for one search."""
    cse_key: str = ""
    cse_cx: str = ""
    contact_email: str = ""
    workers: int = WORKER_COUNT
    pool_cap: int = POOL_CAP
    fetch_timeout_s: float = FETCH_TIMEOUT_S
    provider_timeout_s: float = PROVIDER_TIMEOUT_S
    fallback_on_no_credible: bool = False

    @property
    def has_primary_credentials(self) -> bool:
        return bool(self.cse_key and self.cse_cx)


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not an integer")
        return default
    if value < 1:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive")
        return default
    return value


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning(f"Ignoring {name}={raw!r}: not a number")
        return default
    if value <= 0:
        logger.warning(f"Ignoring {name}={raw!r}: must be positive")
        return default
    return value


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    env = os.environ if environ is None else environ
    return Settings(
        cse_key=(env.get("CSE_KEY") or "").strip(),
        cse_cx=(env.get("CSE_CX") or "").strip(),
        contact_email=(env.get("SOURCE_FINDER_CONTACT_EMAIL") or "").strip(),
        workers=_int_env(env, "SOURCE_FINDER_WORKERS", WORKER_COUNT),
        pool_cap=_int_env(env, "SOURCE_FINDER_POOL_CAP", POOL_CAP),
        fetch_timeout_s=_float_env(env, "SOURCE_FINDER_FETCH_TIMEOUT_S", FETCH_TIMEOUT_S),
        provider_timeout_s=_float_env(env, "SOURCE_FINDER_PROVIDER_TIMEOUT_S", PROVIDER_TIMEOUT_S),
        fallback_on_no_credible=(env.get("SOURCE_FINDER_FALLBACK_ON_NO_CREDIBLE") or "").strip().lower() in TRUE_VALUES,
    )
