"""Data model shared by the discovery, scoring and ranking stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------
class TrustScope(str, Enum):
    WEB = "web"        # No host prefilter
    WIDE = "wide"      # Institutional suffixes + every curated table
    STRICT = "strict"  # Institutional suffixes + core institutions only

    @classmethod
    def parse(cls, value: Optional[str]) -> "TrustScope":
        """Unknown or empty values collapse to WEB."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.WEB


class Criterion(str, Enum):
    AUTHORITY = "Authority"
    ACCURACY = "Accuracy"
    CURRENCY = "Currency"
    OBJECTIVITY = "Objectivity"
    PURPOSE = "Purpose"
    AUDIENCE = "Audience"


class GateKind(str, Enum):
    SOFT = "soft"        # Failing is noted, verdict unchanged
    HARD = "hard"        # Failing kills the candidate
    EXPLAIN = "explain"  # Failing only annotates


class StageStatus(str, Enum):
    FAILED_SOFT = "failed-soft"
    EXPLAIN = "explain"


class Verdict(str, Enum):
    CREDIBLE = "CREDIBLE"
    NOT_CREDIBLE = "NOT_CREDIBLE"


class Strength(str, Enum):
    HIGH = "high"
    LIMITED = "limited"
    LOW = "low"


# -----------------------------------------------------------------------------
# Records
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class Candidate:
    title: str
    url: str


@dataclass(frozen=True)
class PageMetadata:
    url: str
    title: str = ""
    author: str = ""
    published_date: str = ""
    modified_date: str = ""
    publisher: str = ""
    raw_content: str = ""
    is_pdf: bool = False


@dataclass(frozen=True)
class CriterionScore:
    name: Criterion
    value: int
    reasons: Tuple[str, ...] = ()


@dataclass(frozen=True)
class StageNote:
    stage: Criterion
    status: StageStatus
    detail: str


@dataclass(frozen=True)
class ScoredResult:
    title: str
    url: str
    publisher: str
    published_date: str
    scores: Dict[str, int]
    score_total: int
    verdict: Verdict
    strength: Strength
    failed_stage: Optional[Criterion] = None
    failed_reason: str = ""
    stage_notes: Tuple[StageNote, ...] = ()
    explanations: Tuple[str, ...] = ()
    citation: str = ""

    @property
    def is_credible(self) -> bool:
        return self.verdict == Verdict.CREDIBLE


@dataclass(frozen=True)
class SearchRequest:
    query: str
    limit: int
    scope: TrustScope = TrustScope.WEB
    debug: bool = False


@dataclass
class SearchResponse:
    query: str
    scope: TrustScope
    source_tier: str
    results: List[ScoredResult] = field(default_factory=list)
    debug_failed: Optional[List[ScoredResult]] = None


# -----------------------------------------------------------------------------
# Serialization
# -----------------------------------------------------------------------------
def result_to_dict(r: ScoredResult) -> Dict[str, Any]:
    """Convert a scored result to a JSON-serializable dict."""
    return {
        "title": r.title,
        "url": r.url,
        "publisher": r.publisher,
        "published": r.published_date or None,
        "scores": dict(r.scores),
        "score_total": r.score_total,
        "verdict": r.verdict.value,
        "strength": r.strength.value,
        "failed_stage": r.failed_stage.value if r.failed_stage else None,
        "failed_reason": r.failed_reason or None,
        "stage_notes": [
            {"stage": n.stage.value, "status": n.status.value, "detail": n.detail}
            for n in r.stage_notes
        ],
        "why": list(r.explanations),
        "citation": r.citation,
    }


def response_to_dict(resp: SearchResponse) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "query": resp.query,
        "scope": resp.scope.value,
        "source_tier": resp.source_tier,
        "results": [result_to_dict(r) for r in resp.results],
    }
    if resp.debug_failed is not None:
        out["debug_failed"] = [result_to_dict(r) for r in resp.debug_failed]
    return out
