"""
Six-criterion decision-tree scorer.

Every candidate is scored on all six criteria, the PDF adjustment is applied,
and then `EVALUATION_PLAN` is walked once in order:

  Authority   soft     failing is noted, evaluation continues
  Accuracy    hard     failing kills the candidate (NOT_CREDIBLE)
  Currency    soft
  Objectivity hard
  Purpose     explain  failing only annotates the inferred purpose
  Audience    explain

The first failing hard gate fixes `failed_stage`; criteria after it keep
their computed scores so `score_total` is always a sum of six values.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from . import markers
from .citation import citation_for
from .config import (
    ACCEPTABLE_MONTHS,
    CREDIBLE_TOTAL,
    DAYS_PER_MONTH,
    DOMINANCE_MIN_HITS,
    LIMITED_TOTAL,
    MAX_EXPLANATIONS,
    MIN_SCORE,
    PASS_SCORE,
    RECENT_MONTHS,
    STRONG_CITATION_COUNT,
    TOP_SCORE,
)
from .extract import PageText, page_text, parse_date
from .models import (
    Candidate,
    Criterion,
    CriterionScore,
    GateKind,
    PageMetadata,
    ScoredResult,
    StageNote,
    StageStatus,
    Strength,
    Verdict,
)
from .trust import (
    DEFAULT_TABLES,
    TIER_CORE,
    TIER_PUBLISHER,
    TIER_SCHOLARLY,
    TIER_SUFFIX,
    TrustTables,
    host_of,
    trust_tier,
)

EVALUATION_PLAN: Tuple[Tuple[Criterion, GateKind], ...] = (
    (Criterion.AUTHORITY, GateKind.SOFT),
    (Criterion.ACCURACY, GateKind.HARD),
    (Criterion.CURRENCY, GateKind.SOFT),
    (Criterion.OBJECTIVITY, GateKind.HARD),
    (Criterion.PURPOSE, GateKind.EXPLAIN),
    (Criterion.AUDIENCE, GateKind.EXPLAIN),
)

TIER_REASONS = {
    TIER_SUFFIX: "Government/education/international domain",
    TIER_CORE: "Recognized government or intergovernmental institution",
    TIER_SCHOLARLY: "Scholarly index or identifier resolver",
    TIER_PUBLISHER: "Major academic publisher",
}

INSTITUTIONAL_TIERS = {TIER_SUFFIX, TIER_CORE}


@dataclass(frozen=True)
class EvaluationContext:
    meta: PageMetadata
    url: str
    host: str
    tier: Optional[str]
    now: datetime
    page: PageText = PageText()

    @property
    def raw(self) -> str:
        return self.meta.raw_content or ""

    @property
    def text(self) -> str:
        """Visible text; markup, scripts and styles removed."""
        return self.page.visible

    @property
    def institutional(self) -> bool:
        return self.tier in INSTITUTIONAL_TIERS


@dataclass(frozen=True)
class DecisionOutcome:
    verdict: Verdict
    failed_stage: Optional[Criterion]
    failed_reason: str
    stage_notes: Tuple[StageNote, ...]


def _score(name: Criterion, value: int, *reasons: str) -> CriterionScore:
    return CriterionScore(name=name, value=value, reasons=tuple(reasons))


# -----------------------------------------------------------------------------
# Criterion evaluators
# -----------------------------------------------------------------------------
def assess_authority(ctx: EvaluationContext) -> CriterionScore:
    if ctx.tier:
        return _score(Criterion.AUTHORITY, TOP_SCORE, TIER_REASONS[ctx.tier])
    if ctx.meta.author.strip():
        return _score(Criterion.AUTHORITY, PASS_SCORE, "Named author present")
    return _score(Criterion.AUTHORITY, MIN_SCORE, "Publisher/author unclear")


def assess_accuracy(ctx: EvaluationContext) -> CriterionScore:
    doi_links = markers.count_doi_links(ctx.raw)
    inst_links = markers.count_institutional_links(ctx.raw)
    cited = doi_links + inst_links
    if cited >= STRONG_CITATION_COUNT:
        return _score(
            Criterion.ACCURACY, TOP_SCORE,
            f"Multiple DOI/gov/edu citations ({doi_links} DOI, {inst_links} institutional)",
        )
    if markers.has_references_section(ctx.page.headings, ctx.text) or cited >= 1:
        return _score(Criterion.ACCURACY, PASS_SCORE, "Some citations present")
    return _score(Criterion.ACCURACY, MIN_SCORE, "Few/no credible citations found")


def _latest_date(meta: PageMetadata) -> Optional[datetime]:
    dates = [d for d in (parse_date(meta.modified_date), parse_date(meta.published_date)) if d]
    return max(dates) if dates else None


def assess_currency(ctx: EvaluationContext) -> CriterionScore:
    dt = _latest_date(ctx.meta)
    if dt is None:
        return _score(Criterion.CURRENCY, MIN_SCORE, "No clear date found")
    months = (ctx.now - dt).total_seconds() / (86400 * DAYS_PER_MONTH)
    if months <= RECENT_MONTHS:
        return _score(Criterion.CURRENCY, TOP_SCORE, "Recently published/updated")
    if months <= ACCEPTABLE_MONTHS:
        return _score(Criterion.CURRENCY, PASS_SCORE, "Acceptably dated")
    return _score(Criterion.CURRENCY, MIN_SCORE, "Likely outdated for fast topics")


def assess_objectivity(ctx: EvaluationContext) -> CriterionScore:
    if markers.has_opinion_markers(ctx.text) and not markers.has_methods_section(ctx.text):
        return _score(Criterion.OBJECTIVITY, 2, "Opinion/editorial signals without balancing methods")
    return _score(Criterion.OBJECTIVITY, 4, "Neutral/balanced tone indicators")


def assess_purpose(ctx: EvaluationContext) -> CriterionScore:
    ads = markers.count_advertising_markers(ctx.text)
    info = markers.count_research_markers(ctx.text)
    if ads >= DOMINANCE_MIN_HITS and ads > info:
        return _score(Criterion.PURPOSE, MIN_SCORE, "Promotional/advertising signals dominate")
    if info:
        reasons = ["Informational/educational signals"]
        if ads:
            reasons.append("Ads/sponsorship signals found")
        return _score(Criterion.PURPOSE, TOP_SCORE, *reasons)
    return _score(Criterion.PURPOSE, PASS_SCORE, "General content")


def assess_audience(ctx: EvaluationContext) -> CriterionScore:
    marketing = markers.count_marketing_markers(ctx.text)
    technical = markers.count_technical_markers(ctx.text)
    if marketing >= DOMINANCE_MIN_HITS and marketing > technical:
        return _score(Criterion.AUDIENCE, 2, "Marketing/customer-facing language")
    if technical:
        return _score(Criterion.AUDIENCE, PASS_SCORE, "Technical/academic language (specialist audience)")
    return _score(Criterion.AUDIENCE, PASS_SCORE, "General audience language acceptable")


EVALUATORS: Dict[Criterion, Callable[[EvaluationContext], CriterionScore]] = {
    Criterion.AUTHORITY: assess_authority,
    Criterion.ACCURACY: assess_accuracy,
    Criterion.CURRENCY: assess_currency,
    Criterion.OBJECTIVITY: assess_objectivity,
    Criterion.PURPOSE: assess_purpose,
    Criterion.AUDIENCE: assess_audience,
}

EXPLAIN_DETAILS = {
    Criterion.PURPOSE: "Primary purpose appears to be promotion or advertising",
    Criterion.AUDIENCE: "Primary audience appears to be customers or prospects",
}


# -----------------------------------------------------------------------------
# PDF adjustment
# -----------------------------------------------------------------------------
def apply_pdf_adjustment(
    scores: Dict[Criterion, CriterionScore], ctx: EvaluationContext
) -> Dict[Criterion, CriterionScore]:
    """
    Institutionally hosted PDFs are not parsed for text, so floor the
    criteria that depend on body text: Authority to 5, Accuracy to 3, and
    Currency to 3 when no date could be read.
    """
    if not (ctx.meta.is_pdf and ctx.institutional):
        return scores
    floors = {Criterion.AUTHORITY: TOP_SCORE, Criterion.ACCURACY: PASS_SCORE}
    if _latest_date(ctx.meta) is None:
        floors[Criterion.CURRENCY] = PASS_SCORE
    adjusted = dict(scores)
    for name, floor in floors.items():
        s = adjusted[name]
        if s.value < floor:
            adjusted[name] = replace(
                s, value=floor, reasons=s.reasons + ("Institutional PDF (body not parsed)",)
            )
    return adjusted


# -----------------------------------------------------------------------------
# Decision tree
# -----------------------------------------------------------------------------
def run_decision_tree(scores: Dict[Criterion, CriterionScore]) -> DecisionOutcome:
    failed_stage: Optional[Criterion] = None
    failed_reason = ""
    notes: List[StageNote] = []

    for name, gate in EVALUATION_PLAN:
        s = scores[name]
        if s.value >= PASS_SCORE:
            continue
        detail = "; ".join(s.reasons) or f"{name.value} below threshold"
        if gate == GateKind.HARD:
            if failed_stage is None:
                failed_stage = name
                failed_reason = detail
        elif gate == GateKind.SOFT:
            notes.append(StageNote(stage=name, status=StageStatus.FAILED_SOFT, detail=detail))
        else:
            notes.append(StageNote(
                stage=name, status=StageStatus.EXPLAIN,
                detail=f"{EXPLAIN_DETAILS.get(name, name.value)}: {detail}",
            ))

    verdict = Verdict.NOT_CREDIBLE if failed_stage else Verdict.CREDIBLE
    return DecisionOutcome(verdict, failed_stage, failed_reason, tuple(notes))


def strength_for(total: int) -> Strength:
    if total >= CREDIBLE_TOTAL:
        return Strength.HIGH
    if total >= LIMITED_TOTAL:
        return Strength.LIMITED
    return Strength.LOW


def collect_explanations(scores: Dict[Criterion, CriterionScore]) -> Tuple[str, ...]:
    seen = set()
    out: List[str] = []
    for name, _ in EVALUATION_PLAN:
        for reason in scores[name].reasons:
            if reason not in seen:
                seen.add(reason)
                out.append(reason)
    return tuple(out[:MAX_EXPLANATIONS])


def evaluate_criteria(
    meta: PageMetadata,
    url: str,
    tables: TrustTables = DEFAULT_TABLES,
    now: Optional[datetime] = None,
) -> Dict[Criterion, CriterionScore]:
    """All six post-adjustment criterion scores, keyed in evaluation order."""
    host = host_of(url) or host_of(meta.url)
    ctx = EvaluationContext(
        meta=meta,
        url=url,
        host=host,
        tier=trust_tier(host, tables),
        now=now or datetime.now(timezone.utc),
        page=page_text(meta.raw_content),
    )
    raw = {name: EVALUATORS[name](ctx) for name, _ in EVALUATION_PLAN}
    return apply_pdf_adjustment(raw, ctx)


def score_candidate(
    candidate: Candidate,
    meta: PageMetadata,
    tables: TrustTables = DEFAULT_TABLES,
    now: Optional[datetime] = None,
) -> ScoredResult:
    scores = evaluate_criteria(meta, candidate.url, tables, now)
    outcome = run_decision_tree(scores)
    total = sum(s.value for s in scores.values())
    title = meta.title or candidate.title or candidate.url
    publisher = meta.publisher or host_of(candidate.url)

    return ScoredResult(
        title=title,
        url=candidate.url,
        publisher=publisher,
        published_date=meta.published_date,
        scores={name.value: scores[name].value for name, _ in EVALUATION_PLAN},
        score_total=total,
        verdict=outcome.verdict,
        strength=strength_for(total),
        failed_stage=outcome.failed_stage,
        failed_reason=outcome.failed_reason,
        stage_notes=outcome.stage_notes,
        explanations=collect_explanations(scores),
        citation=citation_for(replace(meta, url=candidate.url, publisher=publisher), title),
    )
