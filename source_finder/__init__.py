"""
Source Finder: turn a free-text query into ranked, explained source
credibility verdicts.

Pipeline: discovery providers (web search, then Crossref / OpenAlex /
Wikipedia references / PubMed as fallbacks) -> URL dedup and host prefilter
-> bounded fetch pool -> six-criterion decision tree (Authority, Accuracy,
Currency, Objectivity, Purpose, Audience; Accuracy and Objectivity are kill
gates) -> citation -> ranking.
"""

from .config import Settings, load_settings
from .errors import (
    CredentialsMissing,
    FetchError,
    FetchTimeout,
    ProviderError,
    RateLimited,
    RequestValidationError,
    SourceFinderError,
)
from .models import (
    Candidate,
    Criterion,
    PageMetadata,
    ScoredResult,
    SearchRequest,
    SearchResponse,
    TrustScope,
    Verdict,
)
from .pipeline import handle_request, parse_request, search_sources
from .scoring import score_candidate
from .trust import DEFAULT_TABLES, TrustTables, is_trusted

__version__ = "1.0.0"

__all__ = [
    "Candidate",
    "CredentialsMissing",
    "Criterion",
    "DEFAULT_TABLES",
    "FetchError",
    "FetchTimeout",
    "PageMetadata",
    "ProviderError",
    "RateLimited",
    "RequestValidationError",
    "ScoredResult",
    "SearchRequest",
    "SearchResponse",
    "Settings",
    "SourceFinderError",
    "TrustScope",
    "TrustTables",
    "Verdict",
    "handle_request",
    "is_trusted",
    "load_settings",
    "parse_request",
    "score_candidate",
    "search_sources",
]
