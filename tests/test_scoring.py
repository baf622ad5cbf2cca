"""
Decision-tree scorer: each criterion, the kill gates, PDF adjustment and
the invariants of ScoredResult.
"""
import pytest

from conftest import CITED_HTML, OPINION_HTML, make_meta, months_ago
from source_finder.models import (
    Candidate,
    Criterion,
    StageStatus,
    Strength,
    Verdict,
)
from source_finder.scoring import (
    EVALUATION_PLAN,
    GateKind,
    evaluate_criteria,
    run_decision_tree,
    score_candidate,
    strength_for,
)


def _score(url, now, **meta):
    meta.setdefault("url", url)
    return score_candidate(Candidate(title="T", url=url), make_meta(**meta), now=now)


# ============================================================================
# Whole-page cases
# ============================================================================

def test_cited_government_page_is_credible(now):
    r = _score("https://www.nih.gov/study", now, raw_content=CITED_HTML, published_date=months_ago(10))
    assert r.scores["Authority"] == 5
    assert r.scores["Accuracy"] == 5
    assert r.scores["Currency"] == 5
    assert r.scores["Objectivity"] == 4
    assert r.scores["Purpose"] >= 3
    assert r.scores["Audience"] == 3
    assert r.score_total >= 25
    assert r.verdict == Verdict.CREDIBLE
    assert r.failed_stage is None
    assert r.strength == Strength.HIGH


def test_uncited_opinion_blog_killed_at_accuracy(now):
    r = _score("https://example-blog.com/post", now, raw_content=OPINION_HTML, publisher="example-blog.com")
    assert r.scores["Accuracy"] == 1
    assert r.verdict == Verdict.NOT_CREDIBLE
    assert r.failed_stage == Criterion.ACCURACY
    assert "citations" in r.failed_reason
    # Later criteria are still scored and explained
    assert len(r.scores) == 6
    assert all(1 <= v <= 5 for v in r.scores.values())
    assert r.scores["Objectivity"] == 2
    stages = [n.stage for n in r.stage_notes]
    assert Criterion.AUTHORITY in stages
    assert Criterion.CURRENCY in stages


# ============================================================================
# Individual criteria
# ============================================================================

def test_authority_levels(now):
    assert _score("https://un.org/x", now).scores["Authority"] == 5
    assert _score("https://arxiv.org/abs/1", now).scores["Authority"] == 5
    assert _score("https://example.com/x", now, author="Jane Doe").scores["Authority"] == 3
    assert _score("https://example.com/x", now).scores["Authority"] == 1


def test_accuracy_levels(now):
    one_gov_link = '<a href="https://www.cdc.gov/flu/">cdc</a>'
    heading_only = "<h2>Bibliography</h2>"
    assert _score("https://example.com/x", now, raw_content=one_gov_link).scores["Accuracy"] == 3
    assert _score("https://example.com/x", now, raw_content=heading_only).scores["Accuracy"] == 3
    assert _score("https://example.com/x", now, raw_content=CITED_HTML).scores["Accuracy"] == 5
    assert _score("https://example.com/x", now, raw_content="plain text").scores["Accuracy"] == 1


@pytest.mark.parametrize("months,expected", [(1, 5), (18, 5), (19, 3), (60, 3), (61, 1)])
def test_currency_bands(now, months, expected):
    r = _score("https://example.com/x", now, raw_content=CITED_HTML, published_date=months_ago(months))
    assert r.scores["Currency"] == expected


def test_currency_uses_most_recent_date(now):
    r = _score(
        "https://example.com/x", now, raw_content=CITED_HTML,
        published_date=months_ago(100), modified_date=months_ago(2),
    )
    assert r.scores["Currency"] == 5


def test_currency_without_date(now):
    r = _score("https://example.com/x", now, raw_content=CITED_HTML, published_date="sometime")
    assert r.scores["Currency"] == 1
    assert "No clear date found" in r.explanations


def test_objectivity_opinion_balanced_by_methods(now):
    text = CITED_HTML + "<p>opinion</p>"
    r = _score("https://example.com/x", now, raw_content=text)
    assert r.scores["Objectivity"] == 4


def test_objectivity_kill_after_accuracy_passes(now):
    text = '<a href="https://doi.org/10.1/a">x</a><p>An editorial view.</p>'
    r = _score("https://example.com/x", now, raw_content=text)
    assert r.scores["Accuracy"] == 3
    assert r.scores["Objectivity"] == 2
    assert r.verdict == Verdict.NOT_CREDIBLE
    assert r.failed_stage == Criterion.OBJECTIVITY


def test_purpose_levels(now):
    promo = CITED_HTML.replace("research methods and findings", "x") + "Sponsored. Advertisement. Buy now. Shop now. Promo."
    assert _score("https://example.com/x", now, raw_content=promo).scores["Purpose"] == 1
    assert _score("https://example.com/x", now, raw_content=CITED_HTML).scores["Purpose"] == 5
    assert _score("https://example.com/x", now, raw_content="<p>hello</p>").scores["Purpose"] == 3


def test_purpose_failure_is_explain_only(now):
    promo = '<a href="https://doi.org/10.1/a">x</a> Sponsored. Advertisement. Buy now.'
    r = _score("https://www.nih.gov/x", now, raw_content=promo, published_date=months_ago(1))
    assert r.scores["Purpose"] == 1
    assert r.verdict == Verdict.CREDIBLE
    note = next(n for n in r.stage_notes if n.stage == Criterion.PURPOSE)
    assert note.status == StageStatus.EXPLAIN
    assert "promotion" in note.detail


def test_audience_levels(now):
    marketing = "<p>Free trial for customers. Sign up. Pricing.</p>"
    technical = "<p>The cohort was statistically significant.</p>"
    assert _score("https://example.com/x", now, raw_content=marketing).scores["Audience"] == 2
    tech = _score("https://example.com/x", now, raw_content=technical)
    assert tech.scores["Audience"] == 3
    assert any("Technical/academic" in e for e in tech.explanations)
    assert _score("https://example.com/x", now, raw_content="<p>hello</p>").scores["Audience"] == 3


# ============================================================================
# Markup is not prose
# ============================================================================

FLEX_CITED_HTML = """
<html><head><style>.layout { display: grid; grid-column: 1 / 3 }</style></head>
<body><div class="layout" style="display:flex;flex-direction: column">
<p>Survey results and findings.</p>
<a href="https://doi.org/10.1000/a1">1</a>
<a href="https://doi.org/10.1000/b2">2</a>
<a href="https://doi.org/10.1000/c3">3</a>
</div></body></html>
"""

OPED_WITH_SEARCH_HTML = """
<html><body>
<form method="get" action="/search"><input name="q"></form>
<h1>Opinion: this is an editorial.</h1>
<p>See <a href="https://doi.org/10.1000/x1">one study</a>.</p>
</body></html>
"""

WIKI_REFERENCES_HTML = """
<div class="mw-parser-output"><p>Some article text.</p>
<h2><span class="mw-headline" id="References">References</span>
<span class="mw-editsection">[<a href="/w/index.php?action=edit">edit</a>]</span></h2>
<ol class="references"><li>Doe, J. (2020). A book.</li></ol></div>
"""


def test_css_layout_is_not_an_opinion_marker(now):
    r = _score("https://example.com/x", now, raw_content=FLEX_CITED_HTML)
    assert r.scores["Accuracy"] == 5
    assert r.scores["Objectivity"] == 4
    assert r.verdict == Verdict.CREDIBLE


def test_form_method_does_not_balance_an_op_ed(now):
    r = _score("https://example.com/x", now, raw_content=OPED_WITH_SEARCH_HTML)
    assert r.scores["Accuracy"] == 3
    assert r.scores["Objectivity"] == 2
    assert r.verdict == Verdict.NOT_CREDIBLE
    assert r.failed_stage == Criterion.OBJECTIVITY


def test_nested_references_heading_counts(now):
    r = _score("https://example.com/x", now, raw_content=WIKI_REFERENCES_HTML)
    assert r.scores["Accuracy"] == 3
    assert r.verdict == Verdict.CREDIBLE


def test_script_text_is_not_scored(now):
    html = CITED_HTML + "<script>var ad = 'Sponsored. Advertisement. Buy now. Shop now.';</script>"
    assert _score("https://example.com/x", now, raw_content=html).scores["Purpose"] == 5


# ============================================================================
# PDF adjustment
# ============================================================================

def test_institutional_pdf_floored(now):
    r = _score("https://www.cdc.gov/report.pdf", now, is_pdf=True, publisher="cdc.gov")
    assert r.scores["Authority"] == 5
    assert r.scores["Accuracy"] == 3
    assert r.scores["Currency"] == 3
    assert r.verdict == Verdict.CREDIBLE
    assert "Institutional PDF (body not parsed)" in r.explanations


def test_institutional_pdf_keeps_parsed_date(now):
    r = _score("https://www.cdc.gov/report.pdf", now, is_pdf=True, modified_date=months_ago(100))
    assert r.scores["Currency"] == 1


def test_non_institutional_pdf_not_adjusted(now):
    r = _score("https://example.com/report.pdf", now, is_pdf=True)
    assert r.scores["Accuracy"] == 1
    assert r.verdict == Verdict.NOT_CREDIBLE
    assert r.failed_stage == Criterion.ACCURACY


# ============================================================================
# Decision tree and invariants
# ============================================================================

def test_evaluation_plan_order_and_gates():
    assert [c for c, _ in EVALUATION_PLAN] == [
        Criterion.AUTHORITY, Criterion.ACCURACY, Criterion.CURRENCY,
        Criterion.OBJECTIVITY, Criterion.PURPOSE, Criterion.AUDIENCE,
    ]
    hard = [c for c, g in EVALUATION_PLAN if g == GateKind.HARD]
    assert hard == [Criterion.ACCURACY, Criterion.OBJECTIVITY]


def test_first_hard_gate_wins(now):
    scores = evaluate_criteria(make_meta(raw_content=OPINION_HTML), "https://example.com/x", now=now)
    outcome = run_decision_tree(scores)
    assert outcome.failed_stage == Criterion.ACCURACY
    assert outcome.verdict == Verdict.NOT_CREDIBLE


def test_soft_failures_do_not_change_verdict(now):
    r = _score("https://example.com/x", now, raw_content=CITED_HTML)
    assert r.scores["Authority"] == 1
    assert r.scores["Currency"] == 1
    assert r.verdict == Verdict.CREDIBLE
    statuses = {n.stage: n.status for n in r.stage_notes}
    assert statuses[Criterion.AUTHORITY] == StageStatus.FAILED_SOFT
    assert statuses[Criterion.CURRENCY] == StageStatus.FAILED_SOFT


@pytest.mark.parametrize("content", ["", CITED_HTML, OPINION_HTML, "Sponsored. Advert. Free trial. Sign up."])
@pytest.mark.parametrize("url", ["https://nih.gov/a", "https://example.com/b", "https://x.com/c.pdf"])
def test_invariants(now, content, url):
    r = _score(url, now, raw_content=content, is_pdf=url.endswith(".pdf"))
    assert 6 <= r.score_total <= 30
    assert r.score_total == sum(r.scores.values())
    assert set(r.scores) == {c.value for c in Criterion}
    if r.scores["Accuracy"] < 3:
        assert r.verdict == Verdict.NOT_CREDIBLE
        assert r.failed_stage == Criterion.ACCURACY
    if r.scores["Accuracy"] >= 3 and r.scores["Objectivity"] >= 3:
        assert r.verdict == Verdict.CREDIBLE
    assert len(r.explanations) <= 12
    assert len(set(r.explanations)) == len(r.explanations)


def test_title_and_publisher_fallbacks(now):
    r = score_candidate(Candidate(title="From provider", url="https://example.com/x"),
                        make_meta(url="https://example.com/x", publisher=""), now=now)
    assert r.title == "From provider"
    assert r.publisher == "example.com"
    r2 = score_candidate(Candidate(title="", url="https://example.com/y"),
                         make_meta(url="https://example.com/y"), now=now)
    assert r2.title == "https://example.com/y"


def test_citation_attached(now):
    r = _score("https://www.nih.gov/study", now, raw_content=CITED_HTML,
               title="Study of Things - National Institutes", author="Doe, Jane",
               published_date="2025-06-01", publisher="NIH")
    assert r.citation == "Doe, J. (2025, June 1). Study of Things. NIH. https://www.nih.gov/study"


@pytest.mark.parametrize("total,band", [(30, Strength.HIGH), (25, Strength.HIGH), (24, Strength.LIMITED),
                                        (20, Strength.LIMITED), (19, Strength.LOW), (6, Strength.LOW)])
def test_strength_bands(total, band):
    assert strength_for(total) == band
